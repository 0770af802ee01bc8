"""
DocFlow Inventory Engine — Ledger Service
=========================================
Per-(product, location) stock quantities behind a DocumentStore.

The ledger has no knowledge of WHY stock moves: lifecycle engines pass
a signed delta and, for document effects, a movement reference.

RULES (NON-NEGOTIABLE):
- Stock never goes negative. A rejected adjustment writes nothing.
- Each read-modify-write is one critical section (store.atomic()).
- A reference already applied to the record is a no-op.
- Every mutation is reported to the notification sink (best-effort).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from core.collaborators.notifications import TAG_INVENTORY, SafeNotifier
from core.store.codec import DictModelCodec
from core.store.document_store import DocumentStore
from core.store.errors import InvalidArgumentError, NotFoundError
from engines.inventory.models import InventoryRecord, product_location_key

logger = logging.getLogger("docflow.inventory")

ENTITY_NAME = "inventory"


def build_inventory_store(
    path: Path, quarantine_corrupt: bool = True
) -> DocumentStore[InventoryRecord]:
    """Inventory collection, unique per (product_id, location_id)."""
    return DocumentStore(
        path=path,
        entity_name=ENTITY_NAME,
        codec=DictModelCodec(InventoryRecord),
        unique_keys={"product_location": lambda record: record.key},
        quarantine_corrupt=quarantine_corrupt,
    )


def _require(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{field_name} cannot be null or empty.")
    return value


def _require_int(value, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{field_name} must be an integer, got {value!r}.")
    return value


class InventoryLedger:
    """
    Stock levels keyed by (product_id, location_id).

    Args:
        store:    DocumentStore[InventoryRecord] with a
                  "product_location" unique key
        notifier: best-effort change notifier
    """

    def __init__(
        self,
        store: DocumentStore[InventoryRecord],
        notifier: Optional[SafeNotifier] = None,
    ):
        self._store = store
        self._notifier = notifier or SafeNotifier()

    @property
    def store(self) -> DocumentStore[InventoryRecord]:
        return self._store

    # ── Queries ───────────────────────────────────────────────

    def get(self, product_id: str, location_id: str) -> Optional[InventoryRecord]:
        _require(product_id, "Product ID")
        _require(location_id, "Location ID")
        return self._store.find_by_key(
            "product_location", product_location_key(product_id, location_id)
        )

    def quantity_of(self, product_id: str, location_id: str) -> int:
        record = self.get(product_id, location_id)
        return record.quantity if record else 0

    def list_all(self) -> List[InventoryRecord]:
        return self._store.find_all()

    def list_by_product(self, product_id: str) -> List[InventoryRecord]:
        _require(product_id, "Product ID")
        return self._store.find_where(lambda r: r.product_id == product_id)

    def list_by_location(self, location_id: str) -> List[InventoryRecord]:
        _require(location_id, "Location ID")
        return self._store.find_where(lambda r: r.location_id == location_id)

    # ── Mutations ─────────────────────────────────────────────

    def adjust(
        self,
        product_id: str,
        location_id: str,
        delta: int,
        reference: Optional[str] = None,
    ) -> InventoryRecord:
        """
        Apply a signed delta. Missing record counts as zero.

        Raises InvalidArgumentError when the result would be negative.
        """
        _require(product_id, "Product ID")
        _require(location_id, "Location ID")
        _require_int(delta, "delta")

        with self._store.atomic():
            record = self.get(product_id, location_id)
            if record is not None and reference and reference in record.applied_refs:
                logger.info(
                    f"Skipping already applied movement {reference} "
                    f"for product {product_id} at location {location_id}"
                )
                return record

            current = record.quantity if record else 0
            new_quantity = current + delta
            if new_quantity < 0:
                logger.warning(
                    f"Rejected adjustment of {delta} for product {product_id} "
                    f"at location {location_id}: only {current} on hand"
                )
                raise InvalidArgumentError(
                    f"Insufficient inventory for product {product_id} at "
                    f"location {location_id}: on hand {current}, change {delta}."
                )

            if record is None:
                record = InventoryRecord(product_id=product_id, location_id=location_id)
            record.quantity = new_quantity
            if reference:
                record.applied_refs.append(reference)
            saved = self._store.save(record)

        logger.info(
            f"Adjusted inventory for product {product_id} at location "
            f"{location_id} by {delta}: {current} → {new_quantity}"
        )
        self._notifier.updated(TAG_INVENTORY, saved)
        return saved

    def forget_references(
        self, product_id: str, location_id: str, references: Iterable[str]
    ) -> None:
        """
        Drop movement references whose effect entry is marked applied.

        Only pending entries can be replayed, so their references are the
        only ones that must stay on the record.
        """
        _require(product_id, "Product ID")
        _require(location_id, "Location ID")
        drop = set(references)
        if not drop:
            return

        with self._store.atomic():
            record = self.get(product_id, location_id)
            if record is None:
                return
            kept = [ref for ref in record.applied_refs if ref not in drop]
            if len(kept) == len(record.applied_refs):
                return
            record.applied_refs = kept
            self._store.save(record)

        logger.debug(
            f"Released {len(drop)} movement references for product "
            f"{product_id} at location {location_id}"
        )

    def set_absolute(
        self, product_id: str, location_id: str, quantity: int
    ) -> InventoryRecord:
        """Create or replace the on-hand quantity."""
        _require(product_id, "Product ID")
        _require(location_id, "Location ID")
        _require_int(quantity, "quantity")
        if quantity < 0:
            raise InvalidArgumentError(
                f"Inventory quantity cannot be negative: {quantity}"
            )

        with self._store.atomic():
            record = self.get(product_id, location_id)
            if record is None:
                record = InventoryRecord(product_id=product_id, location_id=location_id)
            record.quantity = quantity
            saved = self._store.save(record)

        logger.info(
            f"Set inventory for product {product_id} at location "
            f"{location_id} to {quantity}"
        )
        self._notifier.updated(TAG_INVENTORY, saved)
        return saved

    def delete(self, record_id: str) -> None:
        """Administrative removal; the lifecycle engines never call this."""
        _require(record_id, "Inventory ID")
        if not self._store.delete_by_id(record_id):
            raise NotFoundError(ENTITY_NAME, record_id)
        self._notifier.deleted(TAG_INVENTORY, record_id)
