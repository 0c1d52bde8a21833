"""
Sales API Routes.
Per-item sale rows, consolidated client invoices, and the guarded write
operations (payment edits and item status changes).
"""

from fastapi import APIRouter, Depends, Query, Response
from typing import Dict, Any, Optional
from app.schemas.sales import ItemStatusChangeRequest, PaymentUpdateRequest
from app.core.backend_client import BackendClient
from app.core.sales_ledger_service import SalesLedgerService
from app.core.consolidation_service import ConsolidationService
from app.core.responses import ResponseHandler
from app.core.exceptions import AppException
from app.core.logging_config import log_operation_start, log_operation_end
from app.api.dependencies import get_backend_client
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["Sales"])


async def _load_rows(client: BackendClient):
    sales = SalesLedgerService.parse_sales(await client.fetch_sales())
    return SalesLedgerService.flatten(sales)


@router.get("/rows", response_model=Dict[str, Any])
async def list_sale_rows(
    q: Optional[str] = Query(None, description="Search client name, IMEI, brand or model"),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    client: BackendClient = Depends(get_backend_client)
):
    """
    One row per sold item, with the sale's balance and the actions the
    item still allows.
    """
    try:
        rows = SalesLedgerService.with_actions(await _load_rows(client))
        rows = SalesLedgerService.search(rows, q)

        return ResponseHandler.list_response(
            data=[row.model_dump(mode="json") for row in rows],
            page=page,
            page_size=page_size
        )

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in list_sale_rows: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e


@router.get("/consolidated-invoices", response_model=Dict[str, Any])
async def list_consolidated_invoices(
    q: Optional[str] = Query(None, description="Search client name or phone"),
    client: BackendClient = Depends(get_backend_client)
):
    """Outstanding retail items grouped per client."""
    try:
        sales = SalesLedgerService.parse_sales(await client.fetch_sales())
        consolidations = ConsolidationService.search(ConsolidationService.consolidate(sales), q)

        return ResponseHandler.success(data={
            "clients": [c.model_dump(mode="json") for c in consolidations],
            "client_count": len(consolidations),
            "total_outstanding": sum(c.outstanding_balance for c in consolidations)
        })

    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in list_consolidated_invoices: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e


@router.get("/consolidated-invoices/{client_name}/pdf")
async def download_consolidated_invoice(
    client_name: str,
    client: BackendClient = Depends(get_backend_client)
):
    """Pass through the consolidated invoice PDF rendered by the backend."""
    content, media_type = await client.fetch_consolidated_invoice_pdf(client_name)
    safe_name = "".join(ch if ch.isalnum() else "_" for ch in client_name) or "client"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="facture_consolidee_{safe_name}.pdf"'}
    )


@router.put("/{sale_id}/payment", response_model=Dict[str, Any])
async def update_sale_payment(
    sale_id: str,
    request: PaymentUpdateRequest,
    client: BackendClient = Depends(get_backend_client)
):
    """
    Record a new paid amount and, optionally, a renegotiated total.
    The total may never fall to or below what the sale's items cost.
    """
    log_operation_start(logger, "update_sale_payment", sale_id=sale_id)
    try:
        row = SalesLedgerService.find_sale_rows(await _load_rows(client), sale_id)[0]
        new_total = request.total_amount if request.total_amount is not None else row.total_amount

        payload = SalesLedgerService.validate_payment_update(row, request.paid_amount, new_total)
        result = await client.update_payment(row.sale_id, payload)

        log_operation_end(logger, "update_sale_payment", success=True, sale_id=sale_id)
        return ResponseHandler.success(data={
            "sale_id": row.sale_id,
            "submitted": payload,
            "payment_status": SalesLedgerService.derive_payment_status(
                new_total, request.paid_amount
            ).value,
            "backend": result
        })

    except AppException as e:
        log_operation_end(logger, "update_sale_payment", success=False, error=e.message)
        raise
    except Exception as e:
        logger.error(f"Unexpected error in update_sale_payment: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e


@router.post("/items/{item_id}/status", response_model=Dict[str, Any])
async def change_item_status(
    item_id: str,
    request: ItemStatusChangeRequest,
    client: BackendClient = Depends(get_backend_client)
):
    """
    Cancel, return or render one sold item.
    Cancelling is only possible within 24 hours of the sale; rendering only after.
    """
    log_operation_start(
        logger, "change_item_status",
        sale_id=request.sale_id, item_id=item_id, target=request.target_status.value
    )
    try:
        row = SalesLedgerService.find_item_row(await _load_rows(client), request.sale_id, item_id)

        SalesLedgerService.guard_status_change(row, request.target_status, request.reason)
        payload = SalesLedgerService.status_change_payload(row, request.target_status, request.reason)
        result = await client.change_item_status(request.target_status, payload)

        log_operation_end(logger, "change_item_status", success=True, item_id=item_id)
        return ResponseHandler.success(data={
            "sale_id": row.sale_id,
            "item_id": row.item_id,
            "previous_status": row.sale_status.value,
            "new_status": request.target_status.value,
            "backend": result
        })

    except AppException as e:
        log_operation_end(logger, "change_item_status", success=False, error=e.message)
        raise
    except Exception as e:
        logger.error(f"Unexpected error in change_item_status: {str(e)}", exc_info=True)
        raise AppException("Internal server error") from e
