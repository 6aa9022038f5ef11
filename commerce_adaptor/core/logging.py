import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from commerce_adaptor.core.config import get_settings

# Stamped on every record emitted while they are set
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
vendor: ContextVar[str] = ContextVar("vendor", default="")

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] [%(vendor)s] [%(correlation_id)s] - %(message)s"


class StructuredLogFormatter(logging.Formatter):
    """
    Renders each record as a single JSON object.

    Fixed fields describe the record and its origin; ``correlation_id`` and
    ``vendor`` appear only when set, and a ``data`` dict passed through
    ``extra`` is merged in at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(self._context_fields())

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        data = getattr(record, "data", None)
        if isinstance(data, dict):
            entry.update(data)

        return json.dumps(entry, default=str)

    @staticmethod
    def _context_fields() -> Dict[str, str]:
        fields = {"correlation_id": correlation_id.get(), "vendor": vendor.get()}
        return {key: value for key, value in fields.items() if value}


class ContextFilter(logging.Filter):
    """Copies the context variables onto records and merges fixed ``extra`` data."""

    def __init__(self, extra: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.extra = extra or {}

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get()
        record.vendor = vendor.get()
        if self.extra:
            record.data = {**(getattr(record, "data", None) or {}), **self.extra}
        return True


def configure_logging() -> None:
    """
    Route library logging to stdout.

    Installs one handler on the root logger, JSON when
    ENABLE_STRUCTURED_LOGGING is set and a plain line format otherwise.
    Applications that configure logging themselves should not call this.
    """
    settings = get_settings()

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    if settings.ENABLE_STRUCTURED_LOGGING:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str, **extra: Any) -> logging.Logger:
    """
    Module logger carrying the context filter.

    Args:
        name: Logger name, normally ``__name__``
        **extra: Fixed data merged into every record of this logger
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, ContextFilter) for f in logger.filters):
        logger.addFilter(ContextFilter(extra))
    return logger


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context, generating one if not given."""
    corr_id = corr_id or str(uuid.uuid4())
    correlation_id.set(corr_id)
    return corr_id


def set_vendor(vendor_tag: Optional[str]) -> None:
    vendor.set(vendor_tag or "")
