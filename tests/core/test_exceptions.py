"""Exception taxonomy tests: status codes, error codes, context payloads."""

from commerce_adaptor.core.exceptions import (
    AmbiguousConfigError,
    APIException,
    AuthenticationError,
    ConstructionError,
    DuplicateVendorError,
    IntegrationException,
    InvalidPageSizeError,
    MissingConfigFieldsError,
    RateLimitError,
    TransportError,
    ValidationException,
    VendorNotFoundError,
)


def test_to_dict_shape():
    error = VendorNotFoundError("acme")

    assert error.to_dict() == {
        "error": {
            "code": "vendor_not_found",
            "message": "No adaptor registered for vendor 'acme'",
            "status_code": 404,
            "context": {"vendor": "acme"},
        }
    }


def test_missing_fields_sorted():
    error = MissingConfigFieldsError({"b", "a"}, vendor="acme")

    assert error.fields == ["a", "b"]
    assert isinstance(error, ValidationException)
    assert error.status_code == 422
    assert "acme" in error.detail


def test_ambiguous_config_messages():
    none = AmbiguousConfigError(0)
    many = AmbiguousConfigError(2, ["acme", "globex"])

    assert none.match_count == 0
    assert "No adaptor" in none.detail
    assert many.candidates == ["acme", "globex"]
    assert "acme, globex" in many.detail


def test_construction_error_keeps_cause():
    cause = RuntimeError("boom")
    error = ConstructionError("failed", vendor="acme", original_exception=cause)

    assert isinstance(error, IntegrationException)
    assert error.status_code == 502
    assert error.original_exception is cause
    assert error.context == {"vendor": "acme", "original_error": "boom"}


def test_duplicate_vendor():
    error = DuplicateVendorError("acme")

    assert isinstance(error, APIException)
    assert error.code == "duplicate_vendor"


def test_invalid_page_size_names_the_field():
    error = InvalidPageSizeError(0)

    assert error.field == "page_size"
    assert error.page_size == 0


def test_transport_error_fields():
    error = TransportError("Error while getting URL", status=503, url="/products")

    assert error.status == 503
    assert error.message == "Error while getting URL"
    assert error.url == "/products"
    assert error.status_code == 502
    assert str(error) == "Error while getting URL"


def test_transport_subclasses():
    auth = AuthenticationError(status=401)
    limited = RateLimitError(url="/products", attempts=4)

    assert isinstance(auth, TransportError)
    assert auth.code == "authentication_error"
    assert isinstance(limited, TransportError)
    assert limited.status == 429
    assert limited.context["attempts"] == 4
