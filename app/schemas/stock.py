"""
Stock Schemas.
Stock summary snapshots, today's stock movements, and the daily
movement comparison built from them.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, field_validator

from app.schemas.common import BackendModel, ProductKeyFields, to_int


class StockStatus(str, Enum):
    """Display classification of a stock quantity."""
    OUT_OF_STOCK = "out of stock"
    LOW_STOCK = "low stock"
    AVAILABLE = "available"


class MovementType(str, Enum):
    """Kind of stock transaction recorded during the day."""
    ADDED = "added"
    SOLD = "sold"
    RETURNED = "returned"   # defective return
    RENDERED = "rendered"   # client give-back


class StockSummaryRow(ProductKeyFields):
    """Quantity in stock for one product key, as reported by the backend."""

    total_quantity_in_stock: int = Field(0, alias="total_quantite_en_stock")
    stock_status: Optional[StockStatus] = None

    @field_validator("total_quantity_in_stock", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> int:
        return to_int(v)


class StockMovement(ProductKeyFields):
    """One stock transaction of the day."""

    movement_type: MovementType
    quantity: int = 1

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("movement_type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class DailyMovementRow(ProductKeyFields):
    """Yesterday vs. today for one product key."""

    stock_yesterday: int = Field(0, alias="stock_hier")
    added_today: int = Field(0, alias="ajouts_jour")
    sold_today: int = Field(0, alias="ventes_jour")
    returned_today: int = Field(0, alias="retours_jour")
    rendered_today: int = Field(0, alias="rendus_jour")
    stock_today: Optional[int] = Field(None, alias="stock_aujourdhui")
    stock_status: Optional[StockStatus] = None

    @field_validator(
        "stock_yesterday", "added_today", "sold_today", "returned_today", "rendered_today",
        mode="before"
    )
    @classmethod
    def coerce_counter(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("stock_today", mode="before")
    @classmethod
    def coerce_optional_stock(cls, v: Any) -> Optional[int]:
        # None means "not supplied"; anything else is authoritative
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return to_int(v)


class CategoryTally(BackendModel):
    """Movement totals for one device type (e.g. CARTON, ARRIVAGE)."""

    device_type: str
    product_count: int = 0
    stock_yesterday: int = 0
    added_today: int = 0
    sold_today: int = 0
    returned_today: int = 0
    rendered_today: int = 0
    stock_today: int = 0


class DailyComparisonRequest(BackendModel):
    """Inputs for an engine-side daily comparison."""

    yesterday: List[StockSummaryRow] = Field(default_factory=list)
    today: Optional[List[StockSummaryRow]] = None
    transactions: List[StockMovement] = Field(default_factory=list)


class DailyStockReport(BackendModel):
    """Daily comparison rows with their per-category tallies."""

    rows: List[DailyMovementRow] = Field(default_factory=list)
    tallies: List[CategoryTally] = Field(default_factory=list)
    source: str = Field("engine", description="'engine' when computed here, 'backend' when accepted as-is")


class StockSummary(BackendModel):
    """Current stock per product key, with totals."""

    rows: List[StockSummaryRow] = Field(default_factory=list)
    total_quantity: int = 0
    product_count: int = 0
