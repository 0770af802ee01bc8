"""
DocFlow Collaborators — Catalog Lookup
======================================
Resolves product metadata used to denormalize line items.

The catalog may be remote in a real deployment: engines call it once
per line item per mutation and never cache results across calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Protocol


@dataclass(frozen=True)
class Product:
    """Catalog entry as seen by the lifecycle engines."""
    product_id: str
    product_code: str
    product_name: str
    unit_price: Optional[Decimal] = None
    active: bool = True

    def __post_init__(self):
        if not self.product_id or not isinstance(self.product_id, str):
            raise ValueError("product_id must be non-empty string.")
        if self.unit_price is not None and not isinstance(self.unit_price, Decimal):
            raise TypeError("unit_price must be Decimal or None.")


class CatalogLookup(Protocol):
    def find_product_by_id(self, product_id: str) -> Optional[Product]:
        """Return the product, or None if unknown."""
        ...


class InMemoryCatalog:
    """
    Deterministic in-memory catalog used by tests and local wiring.
    Rejects duplicate product ids.
    """

    def __init__(self, products: Iterable[Product] | None = None):
        self._products: dict[str, Product] = {}
        for product in products or ():
            self.add(product)

    def add(self, product: Product) -> None:
        if product.product_id in self._products:
            raise ValueError(f"Duplicate product id '{product.product_id}'.")
        self._products[product.product_id] = product

    def find_product_by_id(self, product_id: str) -> Optional[Product]:
        if not product_id:
            return None
        return self._products.get(product_id)
