"""
Shared helpers for backend payload schemas.

The inventory backend is loose about numbers: amounts arrive as strings,
nulls or not at all. Every numeric field goes through these coercions so
that arithmetic downstream never sees None or NaN.
"""

import math
from decimal import Decimal
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_number(value: Any) -> float:
    """Coerce a backend value to a finite float, defaulting to 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = str(value).strip().replace(" ", "").replace(",", ".")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    """Coerce a backend value to an int, defaulting to 0."""
    return int(to_number(value))


def to_flag(value: Any) -> bool:
    """Coerce backend booleans, which may arrive as 0/1 or 'true'/'false'."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "oui")
    return bool(value)


def normalize_key_part(value: Optional[str]) -> str:
    """Key component used for matching: None and blank are the same."""
    if value is None:
        return ""
    return str(value).strip()


class BackendModel(BaseModel):
    """Base for schemas fed by the backend's French field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProductKeyFields(BackendModel):
    """Identity of a stock line: brand, model, storage, device type, carton grade."""

    brand: Optional[str] = Field(None, alias="marque")
    model: Optional[str] = Field(None, alias="modele")
    storage: Optional[str] = Field(None, alias="stockage")
    device_type: Optional[str] = Field(None, alias="type")
    carton_type: Optional[str] = Field(None, alias="type_carton")

    @field_validator("brand", "model", "storage", "device_type", "carton_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    def product_key(self) -> Tuple[str, str, str, str, str]:
        return (
            normalize_key_part(self.brand),
            normalize_key_part(self.model),
            normalize_key_part(self.storage),
            normalize_key_part(self.device_type),
            normalize_key_part(self.carton_type),
        )

    def search_text(self) -> str:
        return " ".join(part for part in self.product_key() if part).lower()
