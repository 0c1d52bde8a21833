"""
Standardized API response handler module.
Provides consistent response format across all endpoints.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResponseMetadata(BaseModel):
    """Metadata for API responses."""
    timestamp: str
    status_code: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": "2025-03-02T10:30:45.123456+00:00",
                "status_code": 200
            }
        }
    )

class ErrorResponse(BaseModel):
    """Standard error response format."""
    success: bool = False
    error: Dict[str, Any]
    metadata: ResponseMetadata

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": {
                    "code": "BACKEND_ERROR",
                    "message": "Inventory backend unreachable: ConnectError",
                    "details": {"path": "/api/ventes"}
                },
                "metadata": {
                    "timestamp": "2025-03-02T10:30:45.123456+00:00",
                    "status_code": 502
                }
            }
        }
    )

class ResponseHandler:
    """Utility class for generating standardized responses."""

    @staticmethod
    def success(
        data: Any = None,
        status_code: int = 200
    ) -> Dict[str, Any]:
        """
        Create a success response.

        Args:
            data: Response data
            status_code: HTTP status code

        Returns:
            Standardized success response dictionary
        """
        return {
            "success": True,
            "data": data,
            "metadata": {
                "timestamp": _timestamp(),
                "status_code": status_code
            }
        }

    @staticmethod
    def list_response(
        data: List[Any],
        page: int,
        page_size: int,
        status_code: int = 200
    ) -> Dict[str, Any]:
        """
        Create a list response holding one page of `data`.

        Args:
            data: Full list of records
            page: Requested page number (1-based)
            page_size: Records per page
            status_code: HTTP status code

        Returns:
            Standardized list response dictionary
        """
        total_count = len(data)
        total_pages = (total_count + page_size - 1) // page_size
        start = (page - 1) * page_size

        return {
            "success": True,
            "data": data[start:start + page_size],
            "pagination": {
                "page": page,
                "page_size": page_size,
                "total_count": total_count,
                "total_pages": total_pages
            },
            "metadata": {
                "timestamp": _timestamp(),
                "status_code": status_code
            }
        }

    @staticmethod
    def error(
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create an error response."""
        return {
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details or {}
            },
            "metadata": {
                "timestamp": _timestamp(),
                "status_code": status_code
            }
        }
