"""
Catalog Service.
Builds the brand -> models reference table from the backend's products.
The table is rebuilt on each call from backend data; nothing is cached or
mutated at module level.
"""

import logging
from typing import Any, Dict, Iterable, List, Set

from pydantic import ValidationError

from app.schemas.catalog import ProductCatalog, ProductRecord

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for product reference data."""

    @staticmethod
    def build_catalog(payload: Iterable[Dict[str, Any]]) -> ProductCatalog:
        brands: Dict[str, Set[str]] = {}
        storages: Set[str] = set()

        for index, record in enumerate(payload or []):
            try:
                product = ProductRecord.model_validate(record)
            except ValidationError:
                logger.warning(f"Skipping malformed product record #{index}")
                continue
            if not product.brand:
                continue
            models = brands.setdefault(product.brand, set())
            if product.model:
                models.add(product.model)
            if product.storage:
                storages.add(product.storage)

        return ProductCatalog(
            brands={brand: sorted(models) for brand, models in sorted(brands.items())},
            storages=CatalogService._sort_storages(storages),
        )

    @staticmethod
    def _sort_storages(storages: Iterable[str]) -> List[str]:
        """Order sizes like '64 Go' < '512 Go' < '1 To'."""
        units = {"go": 1, "gb": 1, "to": 1024, "tb": 1024}

        def size(label: str):
            parts = label.split()
            try:
                amount = float(parts[0].replace(",", "."))
            except (IndexError, ValueError):
                return (1, label)
            unit = parts[1].lower() if len(parts) > 1 else "go"
            return (0, amount * units.get(unit, 1), label)

        return sorted(set(storages), key=size)
