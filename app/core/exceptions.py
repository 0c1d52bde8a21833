"""
Custom exception classes for the application.
"""

from typing import Any, Dict, Optional

class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationException(AppException):
    """Exception raised for validation errors."""
    def __init__(self, message: str, details: Dict = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details=details or {}
        )

class NotFoundException(AppException):
    """Exception raised when a resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id}
        )

class ConflictException(AppException):
    """Resource conflict exception, e.g. a forbidden status transition."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="CONFLICT",
            status_code=409,
            details=details
        )

class BackendException(AppException):
    """The inventory backend failed or answered with an error."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(
            message=message,
            error_code="BACKEND_ERROR",
            status_code=502,
            details=details
        )
        self.upstream_status = upstream_status
