"""
Sales Schemas.
Sales ("ventes") as returned by the inventory backend, and the derived
rows and client consolidations built from them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import Field, field_validator

from app.schemas.common import BackendModel, to_flag, to_int, to_number


class SaleStatus(str, Enum):
    """Status of a single sold item. Backend values are French."""
    ACTIVE = "actif"
    CANCELLED = "annule"
    RETURNED = "retourne"
    REPLACED = "remplace"
    RENDERED = "rendu"


_STATUS_SYNONYMS = {
    "active": SaleStatus.ACTIVE,
    "cancelled": SaleStatus.CANCELLED,
    "canceled": SaleStatus.CANCELLED,
    "annulé": SaleStatus.CANCELLED,
    "returned": SaleStatus.RETURNED,
    "retourné": SaleStatus.RETURNED,
    "replaced": SaleStatus.REPLACED,
    "remplacé": SaleStatus.REPLACED,
    "rendered": SaleStatus.RENDERED,
}


class PaymentStatus(str, Enum):
    """Sale-level payment status."""
    PENDING = "en_attente"
    PARTIAL = "paiement_partiel"
    PAID = "payee_integralement"
    CANCELLED = "annulee"


class SaleLineItem(BackendModel):
    """One unit of merchandise within a sale."""

    item_id: Optional[Union[int, str]] = None
    product_id: Optional[Union[int, str]] = Field(None, alias="produit_id")
    brand: Optional[str] = Field(None, alias="marque")
    model: Optional[str] = Field(None, alias="modele")
    storage: Optional[str] = Field(None, alias="stockage")
    carton_type: Optional[str] = Field(None, alias="type_carton")
    device_type: Optional[str] = Field(None, alias="type")
    imei: Optional[str] = None
    quantity_sold: int = Field(0, alias="quantite_vendue")
    unit_sale_price: float = Field(0.0, alias="prix_unitaire_vente")
    unit_purchase_price: float = Field(0.0, alias="prix_unitaire_achat")
    sale_status: SaleStatus = Field(SaleStatus.ACTIVE, alias="statut_vente")
    is_special_sale_item: bool = False
    source_purchase_id: Optional[Union[int, str]] = Field(None, alias="source_achat_id")

    @field_validator("unit_sale_price", "unit_purchase_price", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("quantity_sold", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("is_special_sale_item", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return to_flag(v)

    @field_validator("brand", "model", "storage", "carton_type", "device_type", "imei", mode="before")
    @classmethod
    def as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("sale_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if v is None:
            return SaleStatus.ACTIVE
        if isinstance(v, str):
            return _STATUS_SYNONYMS.get(v.strip().lower(), v.strip().lower())
        return v

    @property
    def is_active(self) -> bool:
        return self.sale_status == SaleStatus.ACTIVE

    def describe(self) -> str:
        """Short label used in consolidated invoice summaries."""
        parts = [p for p in (self.brand, self.model) if p]
        if self.storage:
            parts.append(self.storage)
        if self.imei:
            parts.append(f"IMEI: {self.imei}")
        return " ".join(parts)


class Sale(BackendModel):
    """One checkout transaction with its line items."""

    sale_id: Union[int, str] = Field(..., alias="vente_id")
    sale_date: Optional[datetime] = Field(None, alias="date_vente")
    client_name: Optional[str] = Field(None, alias="client_nom")
    client_phone: Optional[str] = Field(None, alias="client_telephone")
    total_amount: float = Field(0.0, alias="montant_total")
    paid_amount: float = Field(0.0, alias="montant_paye")
    payment_status: Optional[str] = Field(None, alias="statut_paiement")
    is_special_invoice: bool = Field(False, alias="is_facture_speciale")
    line_items: List[SaleLineItem] = Field(default_factory=list, alias="articles")

    @field_validator("total_amount", "paid_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("is_special_invoice", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return to_flag(v)

    @field_validator("client_name", "client_phone", "payment_status", mode="before")
    @classmethod
    def as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("line_items", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class FlatSaleRow(BackendModel):
    """A sale line item joined with its sale, plus derived balances."""

    sale_id: Union[int, str]
    sale_date: Optional[datetime] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    total_amount: float = 0.0
    paid_amount: float = 0.0
    payment_status: Optional[str] = None
    item_id: Optional[Union[int, str]] = None
    product_id: Optional[Union[int, str]] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    storage: Optional[str] = None
    carton_type: Optional[str] = None
    device_type: Optional[str] = None
    imei: Optional[str] = None
    quantity_sold: int = 0
    unit_sale_price: float = 0.0
    unit_purchase_price: float = 0.0
    sale_status: SaleStatus = SaleStatus.ACTIVE
    is_special_sale_item: bool = False
    source_purchase_id: Optional[Union[int, str]] = None
    total_purchase_cost_of_sale: float = 0.0
    remaining_due_for_row: float = 0.0
    status_label: str = ""
    actions: List[str] = Field(default_factory=list)


class ClientConsolidation(BackendModel):
    """Outstanding retail items of one client, rolled into a single invoice view."""

    client_name: str
    client_phone: Optional[str] = None
    line_items: List[SaleLineItem] = Field(default_factory=list)
    total_due_consolidated: float = 0.0
    total_paid_consolidated: float = 0.0
    outstanding_balance: float = 0.0
    outstanding_display: str = ""
    client_phone_display: str = ""
    items_summary: str = ""


class PaymentUpdateRequest(BackendModel):
    """New paid amount and, optionally, a renegotiated total for a sale."""

    paid_amount: Optional[float] = Field(None, alias="montant_paye")
    total_amount: Optional[float] = Field(None, alias="new_total_amount")


class ItemStatusChangeRequest(BackendModel):
    """Request to move one sold item to another status."""

    sale_id: Union[int, str] = Field(..., alias="vente_id")
    target_status: SaleStatus
    reason: Optional[str] = None

    @field_validator("target_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _STATUS_SYNONYMS.get(v.strip().lower(), v.strip().lower())
        return v
