"""
DocFlow Documents — Shared Document Model
=========================================
Line items, totals and the inventory effect journal shared by every
document type (Order, PurchaseOrder, RMA, CorrectionTicket).

RULES:
- line_total is ALWAYS recomputed: unit_price × quantity, or for
  returns unit_price × returned_quantity. Input values are ignored.
- subtotal = Σ line_total, total = subtotal + tax + other_charge,
  recomputed on every mutation. Input values are ignored.
- product_code / product_name are denormalized from the catalog on
  every mutation and never trusted from input.
- json_data is an opaque bag, echoed back untouched unless replaced.

Documents are mutable: engines load a copy, change it, save it back.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.documents.money import ZERO
from core.store.codec import (
    decode_datetime,
    decode_decimal,
    decode_int,
    encode_datetime,
    encode_decimal,
)


def _require_object(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be an object, got {type(data).__name__}.")
    return data


def _require_list(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be an array, got {type(value).__name__}.")
    return value


def _money_or_zero(value: Any, field_name: str) -> Decimal:
    decoded = decode_decimal(value, field_name)
    return ZERO if decoded is None else decoded


# ══════════════════════════════════════════════════════════════
# LINE ITEMS
# ══════════════════════════════════════════════════════════════

@dataclass
class LineItem:
    """Quantity / price entry of an Order or PurchaseOrder."""
    id: Optional[str] = None
    product_id: Optional[str] = None
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int = 0
    unit_price: Optional[Decimal] = None
    line_total: Decimal = ZERO

    @property
    def billable_quantity(self) -> int:
        return self.quantity

    @property
    def stock_quantity(self) -> int:
        """Units moved in or out of inventory by this line."""
        return self.quantity

    def ensure_id(self) -> None:
        if not self.id:
            self.id = str(uuid.uuid4())

    def calculate_line_total(self) -> Decimal:
        if self.unit_price is None:
            self.line_total = ZERO
        else:
            self.line_total = self.unit_price * (self.billable_quantity or 0)
        return self.line_total

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": encode_decimal(self.unit_price),
            "line_total": encode_decimal(self.line_total),
        }

    @classmethod
    def _kwargs_from_dict(cls, data: dict) -> Dict[str, Any]:
        _require_object(data, "Line item")
        return {
            "id": data.get("id"),
            "product_id": data.get("product_id"),
            "product_code": data.get("product_code"),
            "product_name": data.get("product_name"),
            "quantity": decode_int(data.get("quantity"), "quantity") or 0,
            "unit_price": decode_decimal(data.get("unit_price"), "unit_price"),
            "line_total": _money_or_zero(data.get("line_total"), "line_total"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(**cls._kwargs_from_dict(data))


ITEM_CONDITIONS = frozenset({"NEW", "USED", "DAMAGED"})
DEFAULT_ITEM_CONDITION = "USED"


@dataclass
class ReturnLineItem(LineItem):
    """
    RMA line. `quantity` is what the customer asked to return,
    `returned_quantity` what actually came back (defaults to quantity).
    """
    returned_quantity: Optional[int] = None
    reason: str = ""
    condition: str = DEFAULT_ITEM_CONDITION

    @property
    def billable_quantity(self) -> int:
        if self.returned_quantity is None:
            return self.quantity
        return self.returned_quantity

    @property
    def stock_quantity(self) -> int:
        return self.billable_quantity

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "returned_quantity": self.returned_quantity,
                "reason": self.reason,
                "condition": self.condition,
            }
        )
        return data

    @classmethod
    def _kwargs_from_dict(cls, data: dict) -> Dict[str, Any]:
        kwargs = super()._kwargs_from_dict(data)
        kwargs.update(
            {
                "returned_quantity": decode_int(
                    data.get("returned_quantity"), "returned_quantity"
                ),
                "reason": data.get("reason") or "",
                "condition": data.get("condition") or DEFAULT_ITEM_CONDITION,
            }
        )
        return kwargs


# ══════════════════════════════════════════════════════════════
# INVENTORY EFFECT JOURNAL
# ══════════════════════════════════════════════════════════════

@dataclass
class InventoryMovement:
    """One line's share of an effect: signed quantity at a location."""
    line_id: str
    product_id: str
    quantity: int  # signed: negative decreases stock

    def to_dict(self) -> dict:
        return {
            "line_id": self.line_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryMovement":
        _require_object(data, "Inventory movement")
        return cls(
            line_id=data["line_id"],
            product_id=data["product_id"],
            quantity=decode_int(data["quantity"], "quantity"),
        )


@dataclass
class InventoryEffect:
    """
    Persisted marker of one inventory side effect.

    Recorded (applied=False) in the same write that persists the status
    change, then flipped to applied=True once every movement has gone
    through the ledger. An unapplied entry after a crash is replayed;
    ledger references make the replay idempotent.
    """
    sequence: int
    effect: str
    location_id: str
    movements: List[InventoryMovement] = field(default_factory=list)
    applied: bool = False
    recorded_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    failures: List[str] = field(default_factory=list)

    def reference(self, entity_tag: str, document_id: str, movement: InventoryMovement) -> str:
        return f"{entity_tag}:{document_id}:{self.sequence}:{movement.line_id}"

    def failed_line_ids(self) -> frozenset:
        # failures are recorded as "<line id>: <reason>"
        return frozenset(f.split(":", 1)[0] for f in self.failures)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "effect": self.effect,
            "location_id": self.location_id,
            "movements": [m.to_dict() for m in self.movements],
            "applied": self.applied,
            "recorded_at": encode_datetime(self.recorded_at),
            "applied_at": encode_datetime(self.applied_at),
            "failures": list(self.failures),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryEffect":
        _require_object(data, "Inventory effect")
        movements = _require_list(data.get("movements"), "movements")
        return cls(
            sequence=decode_int(data["sequence"], "sequence"),
            effect=data["effect"],
            location_id=data["location_id"],
            movements=[InventoryMovement.from_dict(m) for m in movements],
            applied=bool(data.get("applied", False)),
            recorded_at=decode_datetime(data.get("recorded_at"), "recorded_at"),
            applied_at=decode_datetime(data.get("applied_at"), "applied_at"),
            failures=[str(f) for f in _require_list(data.get("failures"), "failures")],
        )


# ══════════════════════════════════════════════════════════════
# BASE DOCUMENT
# ══════════════════════════════════════════════════════════════

# Fields a caller may never set through update(): derived or store-owned.
DERIVED_FIELDS = frozenset(
    {"id", "subtotal", "total", "inventory_effects"}
)


@dataclass
class Document:
    """
    Common shape of every document type.

    Variants add their own fields and set ITEM_TYPE (None for documents
    without line items).
    """
    id: Optional[str] = None
    number: Optional[str] = None
    status: Optional[str] = None
    items: List[LineItem] = field(default_factory=list)
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    other_charge: Decimal = ZERO
    total: Decimal = ZERO
    notes: Optional[str] = None
    json_data: Optional[Dict[str, Any]] = None
    inventory_effects: List[InventoryEffect] = field(default_factory=list)

    ITEM_TYPE = LineItem

    # ── Totals ────────────────────────────────────────────────

    def calculate_totals(self) -> None:
        if self.items is None:
            self.items = []
        for item in self.items:
            item.calculate_line_total()
        self.subtotal = sum((item.line_total for item in self.items), ZERO)
        if self.tax is None:
            self.tax = ZERO
        if self.other_charge is None:
            self.other_charge = ZERO
        self.total = self.subtotal + self.tax + self.other_charge

    # ── Line item access ──────────────────────────────────────

    def find_item(self, item_id: str) -> Optional[LineItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_item_by_product(self, product_id: str) -> Optional[LineItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    # ── Effect journal ────────────────────────────────────────

    @property
    def pending_effect(self) -> Optional[InventoryEffect]:
        if self.inventory_effects and not self.inventory_effects[-1].applied:
            return self.inventory_effects[-1]
        return None

    def last_applied_effect(self, effect: str) -> Optional[InventoryEffect]:
        for entry in reversed(self.inventory_effects):
            if entry.effect == effect and entry.applied:
                return entry
        return None

    def record_effect(
        self,
        effect: str,
        location_id: str,
        movements: List[InventoryMovement],
        recorded_at: datetime,
    ) -> InventoryEffect:
        entry = InventoryEffect(
            sequence=len(self.inventory_effects) + 1,
            effect=effect,
            location_id=location_id,
            movements=movements,
            recorded_at=recorded_at,
        )
        self.inventory_effects.append(entry)
        return entry

    # ── Serialization ─────────────────────────────────────────

    def _base_to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "status": self.status,
            "items": [item.to_dict() for item in self.items or []],
            "subtotal": encode_decimal(self.subtotal),
            "tax": encode_decimal(self.tax),
            "other_charge": encode_decimal(self.other_charge),
            "total": encode_decimal(self.total),
            "notes": self.notes,
            "json_data": self.json_data,
            "inventory_effects": [e.to_dict() for e in self.inventory_effects],
        }

    @classmethod
    def _base_from_dict(cls, data: dict) -> Dict[str, Any]:
        _require_object(data, "Document")
        item_type = cls.ITEM_TYPE
        items = _require_list(data.get("items"), "items")
        effects = _require_list(data.get("inventory_effects"), "inventory_effects")
        return {
            "id": data.get("id"),
            "number": data.get("number"),
            "status": data.get("status"),
            "items": [item_type.from_dict(i) for i in items] if item_type else [],
            "subtotal": _money_or_zero(data.get("subtotal"), "subtotal"),
            "tax": _money_or_zero(data.get("tax"), "tax"),
            "other_charge": _money_or_zero(data.get("other_charge"), "other_charge"),
            "total": _money_or_zero(data.get("total"), "total"),
            "notes": data.get("notes"),
            "json_data": data.get("json_data"),
            "inventory_effects": [
                InventoryEffect.from_dict(e) for e in effects
            ],
        }

    def to_dict(self) -> dict:
        return self._base_to_dict()

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        return cls(**cls._base_from_dict(data))
