"""
Defines custom exceptions for the application to allow for more specific error handling.

Every error maps onto one member of the ErrorType taxonomy so callers can react
to the category of failure instead of the concrete exception class.
"""

import time
from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Categories of failure surfaced to callers."""

    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    DATA_CORRUPTION = "DATA_CORRUPTION"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ConverterError(Exception):
    """Base exception for all application-specific errors."""

    error_type: ErrorType = ErrorType.UNKNOWN_ERROR
    retryable: bool = False

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = time.time()

    @property
    def severity(self) -> str:
        return "low" if self.error_type is ErrorType.VALIDATION_ERROR else "medium"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.error_type.value,
            "message": self.message,
            "severity": self.severity,
            "timestamp": self.timestamp,
            "context": {k: str(v) for k, v in self.context.items()},
        }


class NetworkError(ConverterError):
    """Raised when there is no connectivity and no usable cached data."""

    error_type = ErrorType.NETWORK_ERROR
    retryable = True


class ApiError(ConverterError):
    """Raised when a remote provider responded with something unusable."""

    error_type = ErrorType.API_ERROR
    retryable = True


class RateLimitError(ApiError):
    """Raised when a remote provider throttles us (HTTP 429)."""

    error_type = ErrorType.RATE_LIMIT_ERROR


class InvalidInputError(ConverterError):
    """Raised for bad caller input: unit ids, currency codes, zone ids, amounts."""

    error_type = ErrorType.VALIDATION_ERROR


class ConversionError(ConverterError):
    """Raised when inputs are valid but the conversion cannot be performed."""

    error_type = ErrorType.CONVERSION_ERROR


class StorageError(ConverterError):
    """Raised when the persistent store rejects a write even after fallback."""

    error_type = ErrorType.STORAGE_ERROR


class StorageQuotaExceededError(StorageError):
    """Raised by a storage tier that has no room left for a value."""


class DataCorruptionError(ConverterError):
    """Raised when a cached record fails structural validation."""

    error_type = ErrorType.DATA_CORRUPTION


class UnknownError(ConverterError):
    """Catch-all for failures that fit no other category."""


class ConfigurationError(ConverterError):
    """Raised for issues related to configuration loading or validation."""

    error_type = ErrorType.VALIDATION_ERROR


class PreferencesImportError(InvalidInputError):
    """Raised when an imported preferences payload is structurally invalid."""
