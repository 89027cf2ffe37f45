"""
Shared error handling for the Redis cache access service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    code: str
    key: Optional[str] = None
    details: Dict[str, Any] = {}


class ServiceException(Exception):
    """Base exception for cache service errors."""

    status_code = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        key: Optional[str] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.key = key
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.message,
            code=self.code,
            key=self.key,
            details=self.details
        )


class StoreUnavailableError(ServiceException):
    """The backing store could not be reached or rejected the command."""

    status_code = 500

    def __init__(
        self,
        operation: str,
        reason: str,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.operation = operation
        merged = {"operation": operation, "reason": reason}
        merged.update(details or {})
        super().__init__("STORE_UNAVAILABLE", f"Failed to {operation}", merged, key)


class NotFoundError(ServiceException):
    """Key not present in the store."""

    status_code = 404

    def __init__(self, key: str, message: str = "Key not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details, key)


class ValidationError(ServiceException):
    """Validation-related errors."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        key: Optional[str] = None
    ):
        super().__init__("VALIDATION_ERROR", message, details, key)


class CheckpointFailedError(ServiceException):
    """The snapshot primitive reported an explicit failure."""

    status_code = 500

    def __init__(self, message: str = "Checkpoint failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("CHECKPOINT_FAILED", message, details)


class CheckpointUnsupportedError(ServiceException):
    """The host runtime cannot snapshot this process."""

    status_code = 501

    def __init__(self, message: str = "Checkpoint not supported", details: Optional[Dict[str, Any]] = None):
        super().__init__("CHECKPOINT_UNSUPPORTED", message, details)
