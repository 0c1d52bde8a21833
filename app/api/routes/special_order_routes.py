"""
Special Order API Routes.
"""

from fastapi import APIRouter, Depends, Query
from typing import Dict, Any, Optional
from app.core.backend_client import BackendClient
from app.core.special_order_service import SpecialOrderService
from app.core.responses import ResponseHandler
from app.core.exceptions import AppException
from app.api.dependencies import get_backend_client
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/special-orders", tags=["Special Orders"])


@router.get("/summary", response_model=Dict[str, Any])
async def get_special_orders_summary(
    q: Optional[str] = Query(None, description="Search client, supplier, brand, model or IMEI"),
    client: BackendClient = Depends(get_backend_client)
):
    """Special orders with status labels, available actions and the sold benefit."""
    try:
        summary = SpecialOrderService.build_summary(await client.fetch_special_orders(), q)
        return ResponseHandler.success(data=summary.model_dump(mode="json"))

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in get_special_orders_summary: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e
