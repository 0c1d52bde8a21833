"""
Sales Ledger Service.
Flattens sales into per-item rows with derived balances, labels each row,
and guards the write operations a row can trigger (payment edits and item
status changes).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.schemas.sales import FlatSaleRow, PaymentStatus, Sale, SaleStatus

logger = logging.getLogger(__name__)

# Items sold less than this long ago may still be cancelled outright;
# older items can only be returned or rendered.
CANCEL_WINDOW = timedelta(hours=24)

STATUS_LABELS = {
    SaleStatus.CANCELLED: "ANNULÉ",
    SaleStatus.RETURNED: "REMPLACER",
    SaleStatus.REPLACED: "REMPLACÉ",
    SaleStatus.RENDERED: "RENDU",
}

ALLOWED_TRANSITIONS = {
    SaleStatus.ACTIVE: {SaleStatus.CANCELLED, SaleStatus.RETURNED, SaleStatus.RENDERED},
    SaleStatus.RETURNED: {SaleStatus.REPLACED},
}

# Transitions that must carry a reason describing the problem
REASON_REQUIRED = {SaleStatus.RETURNED, SaleStatus.RENDERED}

CLOSED_PAYMENT_STATUSES = {PaymentStatus.PAID.value, PaymentStatus.CANCELLED.value}

_TARGET_ACTIONS = {
    SaleStatus.CANCELLED: "cancel",
    SaleStatus.RETURNED: "return",
    SaleStatus.RENDERED: "mark_rendered",
}


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class SalesLedgerService:
    """Service for the per-item view of sales."""

    @staticmethod
    def parse_sales(payload: Iterable[Dict[str, Any]]) -> List[Sale]:
        """
        Parse backend sale records, skipping the ones that cannot be read.

        A malformed record is logged and dropped; it never prevents the
        remaining sales from being reported.
        """
        sales: List[Sale] = []
        skipped = 0
        for index, record in enumerate(payload or []):
            try:
                sales.append(Sale.model_validate(record))
            except ValidationError as e:
                skipped += 1
                sale_id = record.get("vente_id") if isinstance(record, dict) else None
                logger.warning(
                    f"Skipping malformed sale record #{index} (vente_id={sale_id}): "
                    f"{e.error_count()} validation error(s)"
                )
        if skipped:
            logger.info(f"Parsed {len(sales)} sales, skipped {skipped} malformed record(s)")
        return sales

    @staticmethod
    def flatten(sales: Iterable[Sale]) -> List[FlatSaleRow]:
        """
        Emit one row per line item, joined with its sale.

        Every row of a sale carries the same purchase cost (summed over all
        of the sale's items, whatever their status). Active rows carry the
        whole sale's outstanding balance; other rows carry zero.
        """
        rows: List[FlatSaleRow] = []
        for sale in sales:
            purchase_cost = sum(
                item.quantity_sold * item.unit_purchase_price for item in sale.line_items
            )
            for item in sale.line_items:
                if item.is_active:
                    remaining_due = sale.total_amount - sale.paid_amount
                else:
                    remaining_due = 0.0

                rows.append(FlatSaleRow(
                    sale_id=sale.sale_id,
                    sale_date=sale.sale_date,
                    client_name=sale.client_name,
                    client_phone=sale.client_phone,
                    total_amount=sale.total_amount,
                    paid_amount=sale.paid_amount,
                    payment_status=sale.payment_status,
                    item_id=item.item_id,
                    product_id=item.product_id,
                    brand=item.brand,
                    model=item.model,
                    storage=item.storage,
                    carton_type=item.carton_type,
                    device_type=item.device_type,
                    imei=item.imei,
                    quantity_sold=item.quantity_sold,
                    unit_sale_price=item.unit_sale_price,
                    unit_purchase_price=item.unit_purchase_price,
                    sale_status=item.sale_status,
                    is_special_sale_item=item.is_special_sale_item,
                    source_purchase_id=item.source_purchase_id,
                    total_purchase_cost_of_sale=purchase_cost,
                    remaining_due_for_row=remaining_due,
                    status_label=SalesLedgerService.status_label(item.sale_status, remaining_due),
                ))
        return rows

    @staticmethod
    def status_label(status: SaleStatus, remaining_due: float) -> str:
        if status in STATUS_LABELS:
            return STATUS_LABELS[status]
        return "VENDU" if remaining_due <= 0 else "EN COURS"

    @staticmethod
    def derive_payment_status(total_amount: float, paid_amount: float) -> PaymentStatus:
        if total_amount > 0 and paid_amount >= total_amount:
            return PaymentStatus.PAID
        if paid_amount > 0:
            return PaymentStatus.PARTIAL
        return PaymentStatus.PENDING

    @staticmethod
    def is_older_than_cancel_window(sale_date: Optional[datetime], now: datetime) -> bool:
        # An undated sale is treated as old: it can no longer be cancelled outright.
        if sale_date is None:
            return True
        return _as_utc(now) - _as_utc(sale_date) > CANCEL_WINDOW

    @staticmethod
    def row_actions(row: FlatSaleRow, now: Optional[datetime] = None) -> List[str]:
        """Actions the presentation layer may offer for a row."""
        if row.sale_status != SaleStatus.ACTIVE:
            return []

        now = now or datetime.now(timezone.utc)
        is_old = SalesLedgerService.is_older_than_cancel_window(row.sale_date, now)

        actions = []
        if not row.is_special_sale_item and row.payment_status not in CLOSED_PAYMENT_STATUSES:
            actions.append("update_payment")
        if not is_old:
            actions.append("cancel")
        actions.append("return")
        if is_old:
            actions.append("mark_rendered")
        return actions

    @staticmethod
    def with_actions(rows: Iterable[FlatSaleRow], now: Optional[datetime] = None) -> List[FlatSaleRow]:
        now = now or datetime.now(timezone.utc)
        return [
            row.model_copy(update={"actions": SalesLedgerService.row_actions(row, now)})
            for row in rows
        ]

    @staticmethod
    def search(rows: Iterable[FlatSaleRow], term: Optional[str]) -> List[FlatSaleRow]:
        """Case-insensitive match on client name, IMEI, brand or model."""
        rows = list(rows)
        if not term:
            return rows
        needle = term.lower()
        return [
            row for row in rows
            if any(
                value and needle in value.lower()
                for value in (row.client_name, row.imei, row.brand, row.model)
            )
        ]

    @staticmethod
    def find_sale_rows(rows: Iterable[FlatSaleRow], sale_id: Union[int, str]) -> List[FlatSaleRow]:
        matches = [row for row in rows if str(row.sale_id) == str(sale_id)]
        if not matches:
            raise NotFoundException("Sale", str(sale_id))
        return matches

    @staticmethod
    def find_item_row(
        rows: Iterable[FlatSaleRow],
        sale_id: Union[int, str],
        item_id: Union[int, str]
    ) -> FlatSaleRow:
        for row in SalesLedgerService.find_sale_rows(rows, sale_id):
            if str(row.item_id) == str(item_id):
                return row
        raise NotFoundException("Sale item", f"{sale_id}/{item_id}")

    @staticmethod
    def validate_status_change(
        current: SaleStatus,
        target: SaleStatus,
        reason: Optional[str] = None
    ) -> None:
        """Status transitions only move forward; returns and give-backs need a reason."""
        if target not in ALLOWED_TRANSITIONS.get(current, set()):
            raise ConflictException(
                f"Cannot change item status from '{current.value}' to '{target.value}'",
                details={"current_status": current.value, "target_status": target.value}
            )
        if target in REASON_REQUIRED and not (reason or "").strip():
            raise ValidationException(
                "A reason is required to return or render an item",
                details={"target_status": target.value}
            )

    @staticmethod
    def guard_status_change(
        row: FlatSaleRow,
        target: SaleStatus,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Check a status change against the item's state and the cancel window."""
        SalesLedgerService.validate_status_change(row.sale_status, target, reason)

        action = _TARGET_ACTIONS.get(target)
        if action and action not in SalesLedgerService.row_actions(row, now):
            if target == SaleStatus.CANCELLED:
                message = "Items sold more than 24 hours ago can no longer be cancelled"
            else:
                message = "Only items sold more than 24 hours ago can be rendered"
            raise ConflictException(
                message,
                details={"sale_id": row.sale_id, "item_id": row.item_id, "target_status": target.value}
            )

    @staticmethod
    def status_change_payload(
        row: FlatSaleRow,
        target: SaleStatus,
        reason: Optional[str] = None,
        client_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build the backend request body for moving a row's item to `target`."""
        if target == SaleStatus.CANCELLED:
            return {
                "venteId": row.sale_id,
                "itemId": row.item_id,
                "produitId": row.product_id,
                "imei": row.imei,
                "quantite": row.quantity_sold,
                "reason": (reason or "").strip() or "Annulation standard",
                "is_special_sale_item": row.is_special_sale_item,
            }

        if target in (SaleStatus.RETURNED, SaleStatus.RENDERED):
            return {
                "vente_item_id": row.item_id,
                "vente_id": row.sale_id,
                "client_nom": client_name or row.client_name,
                "imei": row.imei,
                "reason": (reason or "").strip(),
                "produit_id": row.product_id,
                "is_special_sale_item": row.is_special_sale_item,
                "source_achat_id": row.source_purchase_id,
                "marque": row.brand,
                "modele": row.model,
                "stockage": row.storage,
                "type": row.device_type,
                "type_carton": row.carton_type,
            }

        raise ValidationException(
            f"Status '{target.value}' is recorded by the backend's return workflow",
            details={"target_status": target.value}
        )

    @staticmethod
    def validate_payment_update(
        row: FlatSaleRow,
        new_paid: Optional[float],
        new_total: Optional[float]
    ) -> Dict[str, int]:
        """
        Check a payment edit against the sale and build the backend payload.

        The renegotiated total may never fall to or below what the sale's
        items cost, nor below what the client has already paid.

        Returns:
            Payload for the backend's update-payment endpoint
        """
        purchase_cost = row.total_purchase_cost_of_sale

        if row.payment_status in CLOSED_PAYMENT_STATUSES:
            raise ConflictException(
                f"Payment of sale {row.sale_id} is closed ({row.payment_status})",
                details={"payment_status": row.payment_status}
            )

        if new_paid is None or new_paid < 0:
            raise ValidationException("The new paid amount is invalid")
        if new_total is None:
            raise ValidationException("The new total amount is invalid")

        # The backend stores whole CFA amounts; check what is actually sent
        new_paid = int(new_paid)
        new_total = int(new_total)

        if new_total <= purchase_cost:
            raise ValidationException(
                "The new total amount cannot be lower than or equal to the sale's total purchase cost",
                details={"new_total_amount": new_total, "total_purchase_cost": purchase_cost}
            )

        if new_paid > new_total:
            raise ValidationException(
                "The paid amount cannot exceed the new total amount",
                details={"paid_amount": new_paid, "new_total_amount": new_total}
            )

        if new_paid > 0 and new_total < row.paid_amount:
            raise ValidationException(
                "The new total amount cannot be lower than the amount already paid",
                details={"new_total_amount": new_total, "already_paid": row.paid_amount}
            )

        payload = {"montant_paye": new_paid}
        if new_total != row.total_amount:
            payload["new_total_amount"] = new_total
        return payload
