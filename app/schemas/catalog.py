"""
Catalog Schemas.
Brand / model / storage reference lists derived from the product inventory.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from app.schemas.common import BackendModel, ProductKeyFields


class ProductRecord(ProductKeyFields):
    """A product as listed by the backend's inventory endpoint."""

    id: Optional[Union[int, str]] = None
    imei: Optional[str] = None
    status: Optional[str] = None

    @field_validator("imei", mode="before")
    @classmethod
    def imei_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class ProductCatalog(BackendModel):
    """Brand to models mapping plus the known storage sizes."""

    brands: Dict[str, List[str]] = Field(default_factory=dict)
    storages: List[str] = Field(default_factory=list)
