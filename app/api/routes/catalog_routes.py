"""
Product Catalog API Routes.
"""

from fastapi import APIRouter, Depends
from typing import Dict, Any
from app.core.backend_client import BackendClient
from app.core.catalog_service import CatalogService
from app.core.responses import ResponseHandler
from app.core.exceptions import AppException
from app.api.dependencies import get_backend_client
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["Catalog"])


@router.get("", response_model=Dict[str, Any])
async def get_catalog(client: BackendClient = Depends(get_backend_client)):
    """Brand -> models table and known storage sizes, built from the backend's products."""
    try:
        catalog = CatalogService.build_catalog(await client.fetch_products())
        return ResponseHandler.success(data=catalog.model_dump(mode="json"))

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in get_catalog: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e
