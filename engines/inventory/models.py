"""
DocFlow Inventory Engine — Inventory Record
===========================================
Non-negative stock quantity of one product at one location.

RULES:
- Unique per (product_id, location_id).
- Created lazily on first adjustment; the lifecycle engines never
  delete a record, they only bring it to zero.
- applied_refs lists movement references already applied, so replaying
  a document effect never moves stock twice. References are released
  once the owning effect entry is marked applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.store.codec import decode_int


def product_location_key(product_id: str, location_id: str) -> str:
    return f"{product_id}|{location_id}"


@dataclass
class InventoryRecord:
    product_id: str
    location_id: str
    quantity: int = 0
    id: Optional[str] = None
    applied_refs: List[str] = field(default_factory=list)
    json_data: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> str:
        return product_location_key(self.product_id, self.location_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "location_id": self.location_id,
            "quantity": self.quantity,
            "applied_refs": list(self.applied_refs),
            "json_data": self.json_data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryRecord":
        if not isinstance(data, dict):
            raise ValueError(f"Inventory record must be an object, got {type(data).__name__}.")
        if not data.get("product_id") or not data.get("location_id"):
            raise ValueError("Inventory record needs product_id and location_id.")
        quantity = decode_int(data.get("quantity"), "quantity") or 0
        if quantity < 0:
            raise ValueError(f"Inventory quantity cannot be negative: {quantity}")
        return cls(
            id=data.get("id"),
            product_id=data["product_id"],
            location_id=data["location_id"],
            quantity=quantity,
            applied_refs=[str(ref) for ref in data.get("applied_refs") or []],
            json_data=data.get("json_data"),
        )
