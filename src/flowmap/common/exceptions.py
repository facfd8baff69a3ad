"""Custom exceptions for FlowMap.

Each exception carries the HTTP status code and error code the web
layer should answer with. Missing GeoIP or DNS data is never an
exception; it shows up as empty fields on the result.
"""

from typing import Any


class FlowMapError(Exception):
    """Base exception for all FlowMap errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize exception with optional details.

        Args:
            message: Human-readable error message.
            details: Additional error details for debugging.
            cause: Original exception that caused this error.
        """
        self.message = message or self.message
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# 400 Bad Request errors
class ValidationError(FlowMapError):
    """Request validation failed."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    message = "Request validation failed"


class InvalidIPAddressError(ValidationError):
    """Malformed IP address supplied for enrichment."""

    error_code = "INVALID_IP_ADDRESS"
    message = "invalid IP address"


class EmptyBatchError(ValidationError):
    """Batch enrichment request without addresses."""

    error_code = "EMPTY_BATCH"
    message = "no IPs provided"


class CapacityError(FlowMapError):
    """Request exceeds a size ceiling."""

    status_code = 400
    error_code = "CAPACITY_EXCEEDED"
    message = "Request exceeds capacity limits"


class BatchTooLargeError(CapacityError):
    """Batch enrichment request above the configured ceiling."""

    error_code = "BATCH_TOO_LARGE"
    message = "too many IPs"


# 500 Internal Server errors
class StorageError(FlowMapError):
    """Flow or configuration storage failed."""

    status_code = 500
    error_code = "STORAGE_ERROR"
    message = "Storage operation failed"


class FlowStoreError(StorageError):
    """Flow record query failed."""

    error_code = "FLOW_STORE_ERROR"
    message = "Flow store query failed"


class ConfigurationError(FlowMapError):
    """Configuration error."""

    status_code = 500
    error_code = "CONFIGURATION_ERROR"
    message = "Service configuration error"
