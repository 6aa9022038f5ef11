"""
Error handling module for the Commerce Adaptor.
Provides centralized error categorization and one-shot diagnostic logging.
"""
import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import BaseModel, Field

from commerce_adaptor.core.exceptions import (
    APIException,
    AuthenticationError,
    ConstructionError,
    RateLimitError,
    TransportError,
    ValidationException,
)


class ErrorCategory(str, Enum):
    """Categorization of errors for processing and reporting."""
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    CONSTRUCTION = "construction"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorDetails(BaseModel):
    """Structured error details for consistency in logging and reporting."""
    timestamp: datetime
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    source: str
    error_code: Optional[str] = None
    http_status_code: Optional[int] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    stacktrace: Optional[str] = None


class ErrorHandler:
    """
    Central error processing class that categorizes errors and logs
    each one exactly once at a level matching its severity.
    """

    # Most specific classes first; the first isinstance match wins
    EXCEPTION_MAP = (
        (AuthenticationError, ErrorCategory.AUTHENTICATION, ErrorSeverity.HIGH),
        (RateLimitError, ErrorCategory.RATE_LIMIT, ErrorSeverity.MEDIUM),
        (ConstructionError, ErrorCategory.CONSTRUCTION, ErrorSeverity.HIGH),
        (TransportError, ErrorCategory.EXTERNAL_API, ErrorSeverity.MEDIUM),
        (ValidationException, ErrorCategory.VALIDATION, ErrorSeverity.LOW),
        (httpx.TimeoutException, ErrorCategory.TIMEOUT, ErrorSeverity.MEDIUM),
        (httpx.TransportError, ErrorCategory.CONNECTION, ErrorSeverity.MEDIUM),
        (APIException, ErrorCategory.INTERNAL, ErrorSeverity.HIGH),
    )

    def __init__(
        self,
        logger: logging.Logger,
        notify_callback: Optional[Callable[[ErrorDetails], None]] = None
    ):
        """
        Initialize the error handler.

        Args:
            logger: Logger instance for error logging
            notify_callback: Optional callback invoked for high severity errors
        """
        self.logger = logger
        self.notify_callback = notify_callback

    def handle_error(
        self,
        exception: Exception,
        source: str,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorDetails:
        """
        Categorize and log an error.

        Args:
            exception: The exception that occurred
            source: Source identifier (e.g., "oauth_rest_client")
            context: Additional context about the error

        Returns:
            ErrorDetails: Structured details about the error
        """
        error_details = self.categorize_error(exception, source, context or {})
        self.log_error(error_details)

        if self.notify_callback and error_details.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            try:
                self.notify_callback(error_details)
            except Exception as e:
                # Log but don't raise if notification itself fails
                self.logger.error(f"Failed to send error notification: {str(e)}")

        return error_details

    def categorize_error(
        self,
        exception: Exception,
        source: str,
        context: Dict[str, Any]
    ) -> ErrorDetails:
        """
        Categorize an error based on the exception type and build error details.

        Args:
            exception: The exception that occurred
            source: Source identifier
            context: Additional context about the error

        Returns:
            ErrorDetails: Structured details about the error
        """
        category = ErrorCategory.UNKNOWN
        severity = ErrorSeverity.MEDIUM
        for exception_type, mapped_category, mapped_severity in self.EXCEPTION_MAP:
            if isinstance(exception, exception_type):
                category, severity = mapped_category, mapped_severity
                break

        http_status_code = getattr(exception, "status", None)
        if http_status_code is None and isinstance(exception, APIException):
            http_status_code = exception.status_code

        # Server-side failures outrank client-side ones
        if isinstance(exception, TransportError) and http_status_code and http_status_code >= 500:
            severity = ErrorSeverity.HIGH

        merged_context = dict(context)
        if isinstance(exception, APIException):
            merged_context.update(exception.context)

        stacktrace = None
        if exception.__traceback__ is not None:
            stacktrace = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        return ErrorDetails(
            timestamp=datetime.now(timezone.utc),
            category=category,
            severity=severity,
            message=str(exception),
            source=source,
            error_code=getattr(exception, "code", None),
            http_status_code=http_status_code,
            context=merged_context,
            stacktrace=stacktrace,
        )

    def log_error(self, error_details: ErrorDetails) -> None:
        """
        Log error details at the appropriate level.

        Args:
            error_details: Structured error information
        """
        log_data = {
            "category": error_details.category.value,
            "severity": error_details.severity.value,
            "source": error_details.source,
        }
        if error_details.error_code:
            log_data["error_code"] = error_details.error_code
        if error_details.http_status_code:
            log_data["http_status_code"] = error_details.http_status_code
        if error_details.context:
            log_data["context"] = error_details.context

        message = f"{error_details.source}: {error_details.message}"
        if error_details.severity in (ErrorSeverity.CRITICAL, ErrorSeverity.HIGH):
            if error_details.stacktrace:
                message = f"{message}\n{error_details.stacktrace}"
            self.logger.error(message, extra={"data": log_data})
        elif error_details.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(message, extra={"data": log_data})
        else:
            self.logger.info(message, extra={"data": log_data})
