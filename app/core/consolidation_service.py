"""
Consolidation Service.
Rolls the active retail items of every client into one outstanding-balance
group, the basis of the consolidated invoice.
"""

import logging
from typing import Dict, Iterable, List, Optional

from app.core.formatting import format_cfa, format_phone_number
from app.schemas.sales import ClientConsolidation, Sale

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown client"


class ConsolidationService:
    """Service for per-client consolidated invoices."""

    @staticmethod
    def client_key(client_name: Optional[str]) -> str:
        """Grouping key: the exact client name, or a sentinel when it is missing."""
        if client_name is None or not client_name.strip():
            return UNKNOWN_CLIENT
        return client_name

    @staticmethod
    def consolidate(sales: Iterable[Sale]) -> List[ClientConsolidation]:
        """
        Group active retail items by client name.

        Special invoices are skipped entirely, as are items that are no longer
        active. Each item adds one unit price to the amount due, and its
        share of the sale's paid fraction to the amount paid. Clients with
        nothing left to pay are dropped.

        Args:
            sales: Parsed sales

        Returns:
            One ClientConsolidation per client still owing money, in order of
            first appearance
        """
        groups: Dict[str, ClientConsolidation] = {}

        for sale in sales:
            if sale.is_special_invoice:
                continue

            if sale.total_amount > 0:
                paid_fraction = sale.paid_amount / sale.total_amount
            else:
                paid_fraction = 0.0

            for item in sale.line_items:
                if not item.is_active:
                    continue

                key = ConsolidationService.client_key(sale.client_name)
                group = groups.get(key)
                if group is None:
                    group = ClientConsolidation(client_name=key, client_phone=sale.client_phone)
                    groups[key] = group
                elif not group.client_phone and sale.client_phone:
                    group.client_phone = sale.client_phone

                group.line_items.append(item)
                group.total_due_consolidated += item.unit_sale_price
                group.total_paid_consolidated += paid_fraction * item.unit_sale_price

        results = []
        for group in groups.values():
            outstanding = group.total_due_consolidated - group.total_paid_consolidated
            if outstanding <= 0:
                continue
            group.outstanding_balance = outstanding
            group.outstanding_display = format_cfa(outstanding)
            group.client_phone_display = format_phone_number(group.client_phone)
            group.items_summary = " ; ".join(item.describe() for item in group.line_items)
            results.append(group)

        logger.debug(
            f"Consolidated {len(groups)} client group(s), {len(results)} with an outstanding balance"
        )
        return results

    @staticmethod
    def search(
        consolidations: Iterable[ClientConsolidation],
        term: Optional[str]
    ) -> List[ClientConsolidation]:
        """Match the client name (case-insensitive) or phone number."""
        consolidations = list(consolidations)
        if not term:
            return consolidations
        needle = term.lower()
        return [
            c for c in consolidations
            if needle in c.client_name.lower()
            or (c.client_phone and term in c.client_phone)
        ]
