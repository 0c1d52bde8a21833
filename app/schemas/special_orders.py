"""
Special Order Schemas.
Wholesale / pre-ordered sales tracked outside the retail invoice flow.
"""

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import Field, field_validator

from app.schemas.common import BackendModel, to_number


class SpecialOrderStatus(str, Enum):
    PENDING = "en_attente"
    ORDERED = "commandé"
    RECEIVED = "reçu"
    PARTIAL_PAYMENT = "paiement_partiel"
    SOLD = "vendu"
    CANCELLED = "annulé"
    REPLACED = "remplacé"


class SpecialOrder(BackendModel):
    order_id: Union[int, str]
    client_name: Optional[str] = Field(None, alias="client_nom")
    supplier_name: Optional[str] = Field(None, alias="fournisseur_nom")
    brand: Optional[str] = Field(None, alias="marque")
    model: Optional[str] = Field(None, alias="modele")
    imei: Optional[str] = None
    client_sale_price: float = Field(0.0, alias="prix_vente_client")
    supplier_purchase_price: float = Field(0.0, alias="prix_achat_fournisseur")
    paid_amount: float = Field(0.0, alias="montant_paye")
    remaining_amount: float = Field(0.0, alias="montant_restant")
    status: SpecialOrderStatus = Field(SpecialOrderStatus.PENDING, alias="statut")
    status_label: str = ""
    actions: List[str] = Field(default_factory=list)

    @field_validator(
        "client_sale_price", "supplier_purchase_price", "paid_amount", "remaining_amount",
        mode="before"
    )
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("imei", mode="before")
    @classmethod
    def imei_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class SpecialOrderSummary(BackendModel):
    orders: List[SpecialOrder] = Field(default_factory=list)
    sold_benefit: float = 0.0
    sold_benefit_display: str = ""
    order_count: int = 0
