"""Structured logging tests: JSON formatting and context propagation."""

import importlib
import json
import logging
import sys

import pytest

from commerce_adaptor.core.logging import (
    ContextFilter,
    StructuredLogFormatter,
    configure_logging,
    correlation_id,
    get_logger,
    set_correlation_id,
    set_vendor,
    vendor,
)


@pytest.fixture(autouse=True)
def reset_context():
    corr_token = correlation_id.set("")
    vendor_token = vendor.set("")
    yield
    correlation_id.reset(corr_token)
    vendor.reset(vendor_token)


def make_record(msg="hello", **attrs):
    record = logging.LogRecord("commerce.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json():
    payload = json.loads(StructuredLogFormatter().format(make_record()))

    assert payload["level"] == "INFO"
    assert payload["message"] == "hello"
    assert payload["logger"] == "commerce.test"
    assert payload["timestamp"].endswith("Z")
    assert "correlation_id" not in payload


def test_formatter_includes_context_and_data():
    set_correlation_id("req-1")
    set_vendor("acme")

    payload = json.loads(StructuredLogFormatter().format(make_record(data={"page": 3})))

    assert payload["correlation_id"] == "req-1"
    assert payload["vendor"] == "acme"
    assert payload["page"] == 3


def test_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = make_record(exc_info=sys.exc_info())

    payload = json.loads(StructuredLogFormatter().format(record))

    assert payload["exception"]["type"] == "RuntimeError"
    assert payload["exception"]["message"] == "boom"


def test_set_correlation_id_generates_one():
    generated = set_correlation_id()

    assert generated
    assert correlation_id.get() == generated


def test_context_filter_merges_extra():
    set_vendor("acme")
    record = make_record(data={"page": 1})

    assert ContextFilter({"component": "registry"}).filter(record)

    assert record.vendor == "acme"
    assert record.data == {"page": 1, "component": "registry"}


def test_get_logger_adds_filter_once():
    logger = get_logger("commerce.test.once", component="pagination")
    get_logger("commerce.test.once", component="pagination")

    filters = [f for f in logger.filters if isinstance(f, ContextFilter)]
    assert len(filters) == 1
    assert filters[0].extra == {"component": "pagination"}


def test_configure_logging_installs_structured_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging()

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredLogFormatter)
        assert root.level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


@pytest.mark.parametrize("module", [
    "commerce_adaptor.adapters.descriptor",
    "commerce_adaptor.adapters.interfaces.commerce",
    "commerce_adaptor.adapters.registry",
    "commerce_adaptor.infrastructure.auth.oauth",
])
def test_module_loggers_carry_context(module):
    """Every package logger stamps the vendor and correlation id on its records."""
    importlib.import_module(module)

    logger = logging.getLogger(module)

    assert any(isinstance(f, ContextFilter) for f in logger.filters)
