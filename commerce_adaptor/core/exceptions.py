from fastapi import status
from typing import Any, Dict, Iterable, Optional


class APIException(Exception):
    """
    Base exception for Commerce Adaptor errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        code: str = "internal_error",
        context: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.detail = detail
        self.code = code
        self.context = context or {}
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for consistent response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.detail,
                "status_code": self.status_code,
                "context": self.context
            }
        }


class IntegrationException(APIException):
    """Exception raised when a commerce back-end integration fails."""

    def __init__(
        self,
        detail: str = "External API integration error",
        code: str = "integration_error",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(status_code=status_code, detail=detail, code=code, context=context)
        self.original_exception = original_exception

        # Add original exception info to context if available
        if original_exception and self.context is not None:
            self.context["original_error"] = str(original_exception)


class ValidationException(APIException):
    """Exception raised when caller input fails validation."""

    def __init__(
        self,
        detail: str = "Validation error",
        code: str = "validation_error",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        merged_context = {"field": field} if field else {}
        if context:
            merged_context.update(context)

        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            code=code,
            context=merged_context
        )
        self.field = field


# -- Registry errors -----------------------------------------------------------


class ConstructionError(IntegrationException):
    """Raised when an adaptor cannot be built from its configuration."""

    def __init__(
        self,
        detail: str = "Adaptor construction failed",
        vendor: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        merged_context = {"vendor": vendor} if vendor else {}
        if context:
            merged_context.update(context)

        super().__init__(
            detail=detail,
            code="construction_error",
            context=merged_context,
            original_exception=original_exception
        )
        self.vendor = vendor


class MissingConfigFieldsError(ValidationException):
    """Raised when required configuration fields are absent."""

    def __init__(self, fields: Iterable[str], vendor: Optional[str] = None):
        self.fields = sorted(fields)
        self.vendor = vendor
        target = f" for vendor '{vendor}'" if vendor else ""
        super().__init__(
            detail=f"Missing configuration fields{target}: {', '.join(self.fields)}",
            code="missing_config_fields",
            context={"fields": self.fields, "vendor": vendor}
        )


class VendorNotFoundError(APIException):
    """Raised when no registered adaptor carries the requested vendor tag."""

    def __init__(self, vendor: str):
        self.vendor = vendor
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No adaptor registered for vendor '{vendor}'",
            code="vendor_not_found",
            context={"vendor": vendor}
        )


class AmbiguousConfigError(ValidationException):
    """
    Raised when structural resolution does not find exactly one adaptor.

    Zero and multiple matches are the same failure; ``match_count`` tells
    them apart.
    """

    def __init__(self, match_count: int, candidates: Optional[Iterable[str]] = None):
        self.match_count = match_count
        self.candidates = list(candidates or [])
        if match_count == 0:
            detail = "No adaptor matches the configuration fields"
        else:
            detail = f"Configuration matches {match_count} adaptors: {', '.join(self.candidates)}"
        super().__init__(
            detail=detail,
            code="ambiguous_config",
            context={"match_count": match_count, "candidates": self.candidates}
        )


class DuplicateVendorError(APIException):
    """Raised at registration time when a vendor tag is already taken."""

    def __init__(self, vendor: str):
        self.vendor = vendor
        super().__init__(
            detail=f"Vendor '{vendor}' is already registered",
            code="duplicate_vendor",
            context={"vendor": vendor}
        )


# -- Pagination errors ---------------------------------------------------------


class InvalidPageSizeError(ValidationException):
    """Raised when a page size is zero or negative."""

    def __init__(self, page_size: Any):
        self.page_size = page_size
        super().__init__(
            detail=f"Page size must be a positive integer, got {page_size!r}",
            code="invalid_page_size",
            field="page_size",
            context={"page_size": page_size}
        )


# -- Transport errors ----------------------------------------------------------


class TransportError(IntegrationException):
    """
    Raised when an HTTP call ends in a failure the client does not absorb.

    ``status`` is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
        code: str = "transport_error",
        original_exception: Optional[Exception] = None
    ):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(
            detail=message,
            code=code,
            context={"status": status, "url": url},
            original_exception=original_exception
        )


class AuthenticationError(TransportError):
    """Exception raised when the token endpoint rejects or fails a request."""

    def __init__(
        self,
        message: str = "Authentication failed",
        status: Optional[int] = None,
        url: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            status=status,
            url=url,
            code="authentication_error",
            original_exception=original_exception
        )


class RateLimitError(TransportError):
    """Exception raised when a configured rate limit retry cap is exhausted."""

    def __init__(self, url: Optional[str] = None, attempts: int = 0):
        self.attempts = attempts
        super().__init__(
            message=f"Rate limit exceeded after {attempts} attempts",
            status=status.HTTP_429_TOO_MANY_REQUESTS,
            url=url,
            code="rate_limit_error"
        )
        self.context["attempts"] = attempts
