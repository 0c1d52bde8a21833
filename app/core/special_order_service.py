"""
Special Order Service.
Labels, available actions, and the sold-benefit total for special
(pre-ordered / wholesale) orders.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from app.core.formatting import format_cfa
from app.schemas.special_orders import SpecialOrder, SpecialOrderStatus, SpecialOrderSummary

logger = logging.getLogger(__name__)

STATUS_DISPLAY = {
    SpecialOrderStatus.PENDING: "EN COURS",
    SpecialOrderStatus.ORDERED: "COMMANDÉ",
    SpecialOrderStatus.RECEIVED: "REÇU",
    SpecialOrderStatus.SOLD: "VENDU",
    SpecialOrderStatus.PARTIAL_PAYMENT: "PARTIEL",
    SpecialOrderStatus.CANCELLED: "ANNULÉ",
    SpecialOrderStatus.REPLACED: "REMPLACÉ",
}

_CLOSED = {SpecialOrderStatus.CANCELLED, SpecialOrderStatus.REPLACED}
_AWAITING_SALE = {SpecialOrderStatus.RECEIVED, SpecialOrderStatus.PARTIAL_PAYMENT}


class SpecialOrderService:
    """Service for special orders."""

    @staticmethod
    def available_actions(order: SpecialOrder) -> List[str]:
        status = order.status
        actions = []
        if status not in _CLOSED and status != SpecialOrderStatus.SOLD:
            actions.append("update_payment")
        if status not in _CLOSED:
            actions.append("cancel")
        if status == SpecialOrderStatus.PENDING:
            actions.append("mark_ordered")
        if status == SpecialOrderStatus.ORDERED:
            actions.append("mark_received")
        if status in _AWAITING_SALE and order.remaining_amount <= 0:
            actions.append("mark_sold")
        if status in _AWAITING_SALE or status == SpecialOrderStatus.SOLD:
            actions.append("replace")
        return actions

    @staticmethod
    def sold_benefit(orders: Iterable[SpecialOrder]) -> float:
        """Margin over all sold orders: client price minus supplier price."""
        return sum(
            order.client_sale_price - order.supplier_purchase_price
            for order in orders
            if order.status == SpecialOrderStatus.SOLD
        )

    @staticmethod
    def search(orders: Iterable[SpecialOrder], term: Optional[str]) -> List[SpecialOrder]:
        orders = list(orders)
        if not term:
            return orders
        needle = term.lower()
        return [
            order for order in orders
            if any(
                value and needle in value.lower()
                for value in (order.client_name, order.supplier_name, order.brand, order.model, order.imei)
            )
        ]

    @staticmethod
    def build_summary(payload: Iterable[Dict[str, Any]], term: Optional[str] = None) -> SpecialOrderSummary:
        orders = []
        for index, record in enumerate(payload or []):
            try:
                order = SpecialOrder.model_validate(record)
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed special order #{index}: {e.error_count()} validation error(s)"
                )
                continue
            order.status_label = STATUS_DISPLAY[order.status]
            order.actions = SpecialOrderService.available_actions(order)
            orders.append(order)

        orders = SpecialOrderService.search(orders, term)
        sold_benefit = SpecialOrderService.sold_benefit(orders)
        return SpecialOrderSummary(
            orders=orders,
            sold_benefit=sold_benefit,
            sold_benefit_display=format_cfa(sold_benefit),
            order_count=len(orders),
        )
