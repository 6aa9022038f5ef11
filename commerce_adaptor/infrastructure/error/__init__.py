"""
Error handling package for the Commerce Adaptor.
Provides centralized error categorization and logging.
"""

from commerce_adaptor.infrastructure.error.handler import (
    ErrorCategory,
    ErrorDetails,
    ErrorHandler,
    ErrorSeverity,
)

__all__ = [
    "ErrorHandler",
    "ErrorDetails",
    "ErrorCategory",
    "ErrorSeverity",
]
