"""
Stock Report API Routes.
Current stock summary and the daily stock movement comparison.
"""

from fastapi import APIRouter, Depends, Query
from typing import Dict, Any, Optional
from app.schemas.stock import DailyComparisonRequest, DailyStockReport
from app.core.backend_client import BackendClient
from app.core.stock_movement_service import StockMovementService
from app.core.responses import ResponseHandler
from app.core.exceptions import AppException
from app.api.dependencies import get_backend_client
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Stock Reports"])


@router.get("/stock-summary", response_model=Dict[str, Any])
async def get_stock_summary(
    q: Optional[str] = Query(None, description="Search brand, model, storage or type"),
    client: BackendClient = Depends(get_backend_client)
):
    """Quantity in stock per product key, classified as out of stock / low / available."""
    try:
        summary = StockMovementService.build_stock_summary(await client.fetch_stock_summary(), q)
        return ResponseHandler.success(data=summary.model_dump(mode="json"))

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in get_stock_summary: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e


@router.get("/daily-stock", response_model=Dict[str, Any])
async def get_daily_stock(
    q: Optional[str] = Query(None, description="Search brand, model, storage or type"),
    client: BackendClient = Depends(get_backend_client)
):
    """
    The backend's daily comparison, taken as-is, with per-type tallies.
    Today's stock is only derived for rows where the backend left it empty.
    """
    try:
        rows = StockMovementService.accept_backend_rows(await client.fetch_daily_stock_comparison())
        rows = StockMovementService.search(rows, q)

        report = DailyStockReport(
            rows=rows,
            tallies=StockMovementService.tally_by_category(rows),
            source="backend"
        )
        return ResponseHandler.success(data=report.model_dump(mode="json"))

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in get_daily_stock: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e


@router.post("/daily-stock/compare", response_model=Dict[str, Any])
async def compare_daily_stock(request: DailyComparisonRequest):
    """
    Compute the daily comparison from yesterday's snapshot, today's
    transactions and, optionally, today's snapshot.
    """
    try:
        rows = StockMovementService.compare_daily(
            request.yesterday, request.today, request.transactions
        )
        report = DailyStockReport(
            rows=rows,
            tallies=StockMovementService.tally_by_category(rows),
            source="engine"
        )
        return ResponseHandler.success(data=report.model_dump(mode="json"))

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in compare_daily_stock: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e
