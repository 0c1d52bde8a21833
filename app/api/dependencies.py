"""
API Dependencies.
Hands the shared inventory backend client to route handlers.
"""

from fastapi import Request, status
from app.core.backend_client import BackendClient
from app.core.exceptions import AppException
import logging

logger = logging.getLogger(__name__)


async def get_backend_client(request: Request) -> BackendClient:
    """
    Dependency returning the backend client opened at application startup.

    Raises:
        AppException: If the client is missing or already closed
    """
    client = getattr(request.app.state, "backend_client", None)
    if client is None or not client.is_open:
        logger.error("Backend client requested but not available")
        raise AppException(
            "Inventory backend client unavailable",
            error_code="SERVICE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    return client
