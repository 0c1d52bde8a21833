"""
Stock Movement Service.
Daily stock comparison (yesterday vs. today per product key), stock status
classification, per-category tallies, and the current stock summary.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from app.schemas.common import ProductKeyFields
from app.schemas.stock import (
    CategoryTally,
    DailyMovementRow,
    MovementType,
    StockMovement,
    StockStatus,
    StockSummary,
    StockSummaryRow,
)

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5
UNCATEGORIZED = "unknown"

_MOVEMENT_COUNTERS = {
    MovementType.ADDED: "added_today",
    MovementType.SOLD: "sold_today",
    MovementType.RETURNED: "returned_today",
    MovementType.RENDERED: "rendered_today",
}

_TALLY_COLUMNS = [
    "stock_yesterday",
    "added_today",
    "sold_today",
    "returned_today",
    "rendered_today",
    "stock_today",
]

ProductKey = Tuple[str, str, str, str, str]


class StockMovementService:
    """Service for stock movement reports."""

    @staticmethod
    def classify_stock(quantity: int) -> StockStatus:
        if quantity <= 0:
            return StockStatus.OUT_OF_STOCK
        if quantity <= LOW_STOCK_THRESHOLD:
            return StockStatus.LOW_STOCK
        return StockStatus.AVAILABLE

    @staticmethod
    def derive_stock_today(row: DailyMovementRow) -> int:
        return (
            row.stock_yesterday
            + row.added_today
            - row.sold_today
            + row.returned_today
            + row.rendered_today
        )

    @staticmethod
    def compare_daily(
        yesterday_snapshot: Iterable[StockSummaryRow],
        today_snapshot: Optional[Iterable[StockSummaryRow]],
        todays_transactions: Iterable[StockMovement]
    ) -> List[DailyMovementRow]:
        """
        Compare yesterday's stock with today's, per product key.

        Every key present in either snapshot or in today's transactions gets
        a row, including keys with no movement at all. When today's snapshot
        lists the key, its quantity is used as today's stock; otherwise
        today's stock is derived from yesterday's plus the day's movements.

        Returns:
            Rows sorted by product key
        """
        identities: Dict[ProductKey, ProductKeyFields] = {}
        counters: Dict[ProductKey, Dict[str, int]] = {}

        def entry(source: ProductKeyFields) -> Dict[str, int]:
            key = source.product_key()
            if key not in counters:
                identities[key] = source
                counters[key] = {
                    "stock_yesterday": 0,
                    "added_today": 0,
                    "sold_today": 0,
                    "returned_today": 0,
                    "rendered_today": 0,
                }
            return counters[key]

        for row in yesterday_snapshot:
            entry(row)["stock_yesterday"] += row.total_quantity_in_stock

        supplied_today: Dict[ProductKey, int] = {}
        for row in today_snapshot or []:
            entry(row)
            key = row.product_key()
            supplied_today[key] = supplied_today.get(key, 0) + row.total_quantity_in_stock

        for movement in todays_transactions:
            entry(movement)[_MOVEMENT_COUNTERS[movement.movement_type]] += movement.quantity

        rows = []
        for key in sorted(counters):
            identity = identities[key]
            row = DailyMovementRow(
                brand=identity.brand,
                model=identity.model,
                storage=identity.storage,
                device_type=identity.device_type,
                carton_type=identity.carton_type,
                **counters[key]
            )
            if key in supplied_today:
                row.stock_today = supplied_today[key]
            else:
                row.stock_today = StockMovementService.derive_stock_today(row)
            row.stock_status = StockMovementService.classify_stock(row.stock_today)
            rows.append(row)

        logger.debug(f"Daily comparison built for {len(rows)} product key(s)")
        return rows

    @staticmethod
    def accept_backend_rows(payload: Iterable[Dict[str, Any]]) -> List[DailyMovementRow]:
        """
        Take the backend's own daily comparison as-is.

        Today's stock is only derived when the backend left it empty, so the
        report never shows a second, disagreeing figure.
        """
        rows = []
        for index, record in enumerate(payload or []):
            try:
                row = DailyMovementRow.model_validate(record)
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed daily stock row #{index}: {e.error_count()} validation error(s)"
                )
                continue
            if row.stock_today is None:
                row.stock_today = StockMovementService.derive_stock_today(row)
            row.stock_status = StockMovementService.classify_stock(row.stock_today)
            rows.append(row)
        return rows

    @staticmethod
    def tally_by_category(rows: Iterable[DailyMovementRow]) -> List[CategoryTally]:
        """Sum the day's figures per device type."""
        records = [
            {
                "device_type": row.device_type or UNCATEGORIZED,
                "stock_yesterday": row.stock_yesterday,
                "added_today": row.added_today,
                "sold_today": row.sold_today,
                "returned_today": row.returned_today,
                "rendered_today": row.rendered_today,
                "stock_today": row.stock_today if row.stock_today is not None
                else StockMovementService.derive_stock_today(row),
            }
            for row in rows
        ]
        if not records:
            return []

        df = pd.DataFrame(records)
        grouped = df.groupby("device_type", sort=True)
        totals = grouped[_TALLY_COLUMNS].sum()
        totals["product_count"] = grouped.size()

        tallies = []
        for device_type, values in totals.iterrows():
            tallies.append(CategoryTally(
                device_type=str(device_type),
                product_count=int(values["product_count"]),
                **{column: int(values[column]) for column in _TALLY_COLUMNS}
            ))
        return tallies

    @staticmethod
    def search(rows: Iterable[ProductKeyFields], term: Optional[str]) -> list:
        """Match any component of the product key."""
        rows = list(rows)
        if not term:
            return rows
        needle = term.lower()
        return [row for row in rows if needle in row.search_text()]

    @staticmethod
    def build_stock_summary(
        payload: Iterable[Dict[str, Any]],
        term: Optional[str] = None
    ) -> StockSummary:
        """Parse the backend stock summary, classify each row, and total it."""
        rows = []
        for index, record in enumerate(payload or []):
            try:
                row = StockSummaryRow.model_validate(record)
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed stock summary row #{index}: {e.error_count()} validation error(s)"
                )
                continue
            row.stock_status = StockMovementService.classify_stock(row.total_quantity_in_stock)
            rows.append(row)

        rows = StockMovementService.search(rows, term)
        return StockSummary(
            rows=rows,
            total_quantity=sum(row.total_quantity_in_stock for row in rows),
            product_count=len(rows),
        )
