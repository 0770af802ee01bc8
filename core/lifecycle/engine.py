"""
DocFlow Lifecycle — Document Lifecycle Engine
=============================================
Generic create / update / delete protocol shared by the Order,
PurchaseOrder, RMA and CorrectionTicket engines.

update(id, changes):
    1. Load the stored document (NotFoundError if absent).
    2. Capture the old status (and any variant predicate, e.g. RMA
       "already received").
    3. Apply the non-None fields of `changes` (partial update).
    4. Re-enrich every line item against the catalog.
    5. Check the status edge against the workflow definition.
    6. Stamp variant fields, recompute totals.
    7. If the edge carries an inventory effect, record a pending entry
       in the document's effect journal.
    8. Persist (one write: new state + pending entry).
    9. Apply the effect through the ledger, one reference per line,
       then mark the entry applied and persist again.
   10. Notify the sink (best-effort).

RULES (NON-NEGOTIABLE):
- Totals are recomputed on every mutation, never taken from input.
- Creation never fires inventory effects.
- A pending entry left by a crash between steps 8 and 9 is replayed
  by reconcile_pending_effects(); ledger references make it idempotent.
- Lock order: engine lock → counter lock → store lock.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
)

from core.collaborators.catalog import CatalogLookup
from core.collaborators.locations import LocationDirectory, resolve_default_location
from core.collaborators.notifications import SafeNotifier
from core.documents.models import (
    DERIVED_FIELDS,
    Document,
    InventoryEffect,
    InventoryMovement,
    LineItem,
)
from core.documents.money import to_money, to_quantity
from core.documents.workflow import WorkflowDefinition
from core.numbering.provider import SequenceRegistry
from core.store.codec import DictModelCodec, decode_datetime
from core.store.document_store import DocumentStore
from core.store.errors import (
    DocFlowError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
)
from core.time.clock import Clock, SystemClock

logger = logging.getLogger("docflow.lifecycle")

D = TypeVar("D", bound=Document)


# ══════════════════════════════════════════════════════════════
# PROTOCOLS
# ══════════════════════════════════════════════════════════════

class StockLedger(Protocol):
    def adjust(
        self,
        product_id: str,
        location_id: str,
        delta: int,
        reference: Optional[str] = None,
    ) -> Any:
        ...

    def forget_references(
        self, product_id: str, location_id: str, references: Iterable[str]
    ) -> None:
        ...


# ══════════════════════════════════════════════════════════════
# EFFECT PLAN
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EffectPlan:
    """
    An inventory effect the current edge requires.

    location_id pins the effect to a location (a rollback goes where the
    original movement went); None means the default location.
    """
    effect: str
    movements: Tuple[InventoryMovement, ...]
    location_id: Optional[str] = None

    def __post_init__(self):
        if not self.effect:
            raise ValueError("effect must be non-empty.")


def movements_for(items: List[LineItem], sign: int) -> Tuple[InventoryMovement, ...]:
    """One signed movement per stock-bearing line (product set, quantity > 0)."""
    movements = []
    for item in items:
        quantity = item.stock_quantity
        if item.product_id and quantity and quantity > 0:
            movements.append(
                InventoryMovement(
                    line_id=item.id,
                    product_id=item.product_id,
                    quantity=sign * quantity,
                )
            )
    return tuple(movements)


def reversed_movements(entry: InventoryEffect) -> Tuple[InventoryMovement, ...]:
    """Negate the movements of an applied entry, skipping lines that failed."""
    failed = entry.failed_line_ids()
    return tuple(
        InventoryMovement(
            line_id=m.line_id, product_id=m.product_id, quantity=-m.quantity
        )
        for m in entry.movements
        if m.line_id not in failed
    )


def build_document_store(
    path: Path,
    entity_name: str,
    model: Type[D],
    quarantine_corrupt: bool = True,
) -> DocumentStore[D]:
    """Store for one document type; `number` is a unique key."""
    return DocumentStore(
        path=path,
        entity_name=entity_name,
        codec=DictModelCodec(model),
        unique_keys={"number": lambda document: document.number},
        quarantine_corrupt=quarantine_corrupt,
    )


# ══════════════════════════════════════════════════════════════
# LIFECYCLE ENGINE
# ══════════════════════════════════════════════════════════════

class DocumentLifecycleEngine(Generic[D]):
    """
    Base engine. Variants set the class attributes and override the
    hooks (_on_create, _capture, _before_save, _plan_effect).
    """

    DOCUMENT_TYPE: ClassVar[Type[Document]] = Document
    ENTITY_LABEL: ClassVar[str] = "Document"
    ENTITY_TAG: ClassVar[str] = "document"
    WORKFLOW: ClassVar[WorkflowDefinition]
    NUMBER_COUNTER: ClassVar[str]
    DATETIME_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    MONEY_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"tax", "other_charge"})

    def __init__(
        self,
        *,
        store: DocumentStore[D],
        sequences: SequenceRegistry,
        ledger: StockLedger,
        catalog: CatalogLookup,
        locations: LocationDirectory,
        notifier: Optional[SafeNotifier] = None,
        clock: Optional[Clock] = None,
    ):
        self._store = store
        self._sequences = sequences
        self._ledger = ledger
        self._catalog = catalog
        self._locations = locations
        self._notifier = notifier or SafeNotifier()
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()

    @property
    def store(self) -> DocumentStore[D]:
        return self._store

    # ── Queries ───────────────────────────────────────────────

    def get(self, document_id: str) -> Optional[D]:
        if document_id is None or not str(document_id).strip():
            return None
        return self._store.find_by_id(document_id)

    def require(self, document_id: str) -> D:
        self._require_id(document_id)
        document = self._store.find_by_id(document_id)
        if document is None:
            raise NotFoundError(self.ENTITY_LABEL, document_id)
        return document

    def find_by_number(self, number: str) -> Optional[D]:
        return self._store.find_by_key("number", number)

    def list_all(self) -> List[D]:
        return self._store.find_all()

    def list_by_status(self, status: Any) -> List[D]:
        status = self.WORKFLOW.validate_state(status)
        return self._store.find_where(lambda d: d.status == status)

    # ── Create ────────────────────────────────────────────────

    def create(self, document: D) -> D:
        if document is None:
            raise InvalidArgumentError(f"{self.ENTITY_LABEL} cannot be None.")
        if document.id:
            raise InvalidArgumentError(
                f"New {self.ENTITY_LABEL} must not carry an id (got {document.id})."
            )

        draft = copy.deepcopy(document)
        draft.status = self.WORKFLOW.validate_state(
            draft.status or self.WORKFLOW.initial_state
        )
        draft.inventory_effects = []
        if draft.number is not None:
            draft.number = str(draft.number).strip() or None
        if self.DOCUMENT_TYPE.ITEM_TYPE is None:
            draft.items = []
        self._enrich_items(draft)
        self._on_create(draft)
        draft.calculate_totals()

        with self._lock:
            if draft.number:
                saved = self._store.save(draft)
            else:
                saved = self._save_with_fresh_number(draft)

        logger.info(
            f"Created {self.ENTITY_LABEL} {saved.number} ({saved.id}) "
            f"with status {saved.status}"
        )
        self._notifier.updated(self.ENTITY_TAG, saved)
        return saved

    # ── Update ────────────────────────────────────────────────

    def update(self, document_id: str, changes: Mapping[str, Any]) -> D:
        self._require_id(document_id)
        if changes is None:
            changes = {}

        with self._lock:
            document = self.require(document_id)
            old_status = document.status
            captured = self._capture(document)

            self._apply_changes(document, changes)
            self._enrich_items(document)
            document.status = self.WORKFLOW.check_transition(old_status, document.status)
            new_status = document.status

            self._before_save(document, old_status, new_status, captured)
            document.calculate_totals()

            entry = None
            plan = self._plan_effect(document, old_status, new_status, captured)
            if plan is not None:
                entry = self._record_effect(document, plan)

            saved = self._store.save(document)
            if old_status != new_status:
                logger.info(
                    f"{self.ENTITY_LABEL} {saved.number} status "
                    f"{old_status} → {new_status}"
                )
            if entry is not None:
                saved = self._apply_effect(saved, entry.sequence)

        self._notifier.updated(self.ENTITY_TAG, saved)
        return saved

    # ── Delete ────────────────────────────────────────────────

    def delete(self, document_id: str) -> None:
        self._require_id(document_id)
        with self._lock:
            if not self._store.delete_by_id(document_id):
                raise NotFoundError(self.ENTITY_LABEL, document_id)
        logger.info(f"Deleted {self.ENTITY_LABEL} {document_id}")
        self._notifier.deleted(self.ENTITY_TAG, document_id)

    # ── Recovery ──────────────────────────────────────────────

    def reconcile_pending_effects(self) -> List[D]:
        """Re-apply every journal entry left unapplied by a crash."""
        reconciled: List[D] = []
        with self._lock:
            pending = self._store.find_where(lambda d: d.pending_effect is not None)
            for document in pending:
                entry = document.pending_effect
                logger.warning(
                    f"Replaying pending {entry.effect} effect #{entry.sequence} "
                    f"of {self.ENTITY_LABEL} {document.number}"
                )
                reconciled.append(self._apply_effect(document, entry.sequence))
        for document in reconciled:
            self._notifier.updated(self.ENTITY_TAG, document)
        return reconciled

    # ══════════════════════════════════════════════════════════
    # HOOKS
    # ══════════════════════════════════════════════════════════

    def _on_create(self, document: D) -> None:
        """Fill variant fields on a new document."""
        return None

    def _capture(self, document: D) -> Any:
        """Snapshot taken from the stored state before changes apply."""
        return None

    def _before_save(
        self, document: D, old_status: str, new_status: str, captured: Any
    ) -> None:
        """Stamp variant fields for the edge (dates, invoice numbers)."""
        return None

    def _plan_effect(
        self, document: D, old_status: str, new_status: str, captured: Any
    ) -> Optional[EffectPlan]:
        return None

    # ══════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════

    def _now(self) -> datetime:
        return self._clock.now_utc()

    def _require_id(self, document_id: Optional[str]) -> None:
        if document_id is None or not str(document_id).strip():
            raise InvalidArgumentError(
                f"{self.ENTITY_LABEL} ID cannot be null or empty."
            )

    def _updatable_fields(self) -> FrozenSet[str]:
        names = {f.name for f in fields(self.DOCUMENT_TYPE)} - DERIVED_FIELDS
        if self.DOCUMENT_TYPE.ITEM_TYPE is None:
            names.discard("items")
        return frozenset(names)

    def _apply_changes(self, document: D, changes: Mapping[str, Any]) -> None:
        allowed = self._updatable_fields()
        for name, value in changes.items():
            if value is None or name in DERIVED_FIELDS:
                continue
            if name not in allowed:
                raise InvalidArgumentError(
                    f"{self.ENTITY_LABEL} has no updatable field '{name}'."
                )
            setattr(document, name, self._coerce_field(name, value))

    def _coerce_field(self, name: str, value: Any) -> Any:
        if name == "items":
            return self._coerce_items(value)
        if name == "status":
            return value.value if isinstance(value, Enum) else value
        if name == "number":
            number = str(value).strip()
            if not number:
                raise InvalidArgumentError(
                    f"{self.ENTITY_LABEL} number cannot be empty."
                )
            return number
        if name in self.MONEY_FIELDS:
            return to_money(value, name)
        if name in self.DATETIME_FIELDS:
            try:
                return decode_datetime(value, name)
            except ValueError as exc:
                raise InvalidArgumentError(str(exc)) from exc
        if name == "json_data" and not isinstance(value, dict):
            raise InvalidArgumentError("json_data must be an object.")
        return copy.deepcopy(value)

    def _coerce_items(self, value: Any) -> List[LineItem]:
        item_type = self.DOCUMENT_TYPE.ITEM_TYPE
        if not isinstance(value, (list, tuple)):
            raise InvalidArgumentError("items must be a list.")
        items = []
        for raw in value:
            if isinstance(raw, item_type):
                items.append(copy.deepcopy(raw))
            elif isinstance(raw, Mapping):
                try:
                    items.append(item_type.from_dict(dict(raw)))
                except (KeyError, TypeError, ValueError) as exc:
                    raise InvalidArgumentError(f"Malformed line item: {exc}") from exc
            else:
                raise InvalidArgumentError(
                    f"Line item must be {item_type.__name__} or an object, "
                    f"got {type(raw).__name__}."
                )
        return items

    def _enrich_items(self, document: D) -> None:
        """Denormalize product code / name; default the unit price."""
        for item in document.items or []:
            item.ensure_id()
            if isinstance(item.unit_price, (int, float, str)):
                item.unit_price = to_money(item.unit_price, "unit_price")
            item.quantity = to_quantity(item.quantity, "quantity")
            if not item.product_id:
                continue
            product = self._catalog.find_product_by_id(item.product_id)
            if product is None:
                logger.warning(
                    f"Product {item.product_id} not in catalog; line {item.id} "
                    f"of {self.ENTITY_LABEL} {document.number} left as is"
                )
                continue
            item.product_code = product.product_code
            item.product_name = product.product_name
            if item.unit_price is None:
                item.unit_price = product.unit_price

    def _save_with_fresh_number(self, draft: D) -> D:
        """
        Persist under the next issued number, skipping numbers a caller
        already supplied on another document.
        """
        while True:
            with self._sequences.reserve(self.NUMBER_COUNTER) as number:
                if self._store.find_by_key("number", number) is not None:
                    logger.warning(
                        f"{self.ENTITY_LABEL} number {number} is already taken, "
                        f"issuing the next one"
                    )
                    continue
                draft.number = number
                return self._store.save(draft)

    def _record_effect(self, document: D, plan: EffectPlan) -> Optional[InventoryEffect]:
        if not plan.movements:
            return None
        location_id = plan.location_id
        if location_id is None:
            location = resolve_default_location(self._locations)
            if location is None:
                logger.warning(
                    f"No locations found. Cannot apply {plan.effect} for "
                    f"{self.ENTITY_LABEL} {document.number}"
                )
                return None
            location_id = location.location_id
        return document.record_effect(
            plan.effect, location_id, list(plan.movements), self._now()
        )

    def _apply_effect(self, document: D, sequence: int) -> D:
        entry = document.inventory_effects[sequence - 1]
        failures: List[str] = []
        for movement in entry.movements:
            reference = entry.reference(self.ENTITY_TAG, document.id, movement)
            try:
                self._ledger.adjust(
                    movement.product_id,
                    entry.location_id,
                    movement.quantity,
                    reference=reference,
                )
            except PersistenceError:
                raise
            except DocFlowError as exc:
                logger.error(
                    f"Error adjusting inventory for product {movement.product_id} "
                    f"({entry.effect}, {self.ENTITY_LABEL} {document.number}): {exc}"
                )
                failures.append(f"{movement.line_id}: {exc}")
            else:
                logger.info(
                    f"{entry.effect}: product {movement.product_id} "
                    f"{movement.quantity:+d} at location {entry.location_id} "
                    f"for {self.ENTITY_LABEL} {document.number}"
                )

        entry.applied = True
        entry.applied_at = self._now()
        entry.failures = failures
        saved = self._store.save(document)
        self._release_references(saved, entry)
        return saved

    def _release_references(self, document: D, entry: InventoryEffect) -> None:
        """Applied entries are never replayed; the ledger can drop their references."""
        by_product: Dict[str, List[str]] = {}
        for movement in entry.movements:
            by_product.setdefault(movement.product_id, []).append(
                entry.reference(self.ENTITY_TAG, document.id, movement)
            )
        for product_id, references in by_product.items():
            self._ledger.forget_references(product_id, entry.location_id, references)


# ══════════════════════════════════════════════════════════════
# LINE ITEM OPERATIONS
# ══════════════════════════════════════════════════════════════

class ItemizedLifecycleEngine(DocumentLifecycleEngine[D]):
    """Adds add / update / remove of line items, each re-entering update()."""

    def add_item(self, document_id: str, product_id: str, quantity: int, **extra) -> D:
        quantity = to_quantity(quantity, "quantity", allow_zero=False)
        if not product_id:
            raise InvalidArgumentError("Product ID cannot be null or empty.")
        with self._lock:
            document = self.require(document_id)
            product = self._catalog.find_product_by_id(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)

            item = document.find_item_by_product(product_id)
            if item is not None:
                item.quantity += quantity
                self._merge_item(item, quantity, **extra)
            else:
                item = self.DOCUMENT_TYPE.ITEM_TYPE(
                    product_id=product.product_id,
                    product_code=product.product_code,
                    product_name=product.product_name,
                    quantity=quantity,
                    unit_price=product.unit_price,
                )
                item.ensure_id()
                self._init_item(item, **extra)
                document.items.append(item)
            return self.update(document_id, {"items": document.items})

    def update_item_quantity(self, document_id: str, item_id: str, quantity: int) -> D:
        quantity = to_quantity(quantity, "quantity", allow_zero=False)
        with self._lock:
            document = self.require(document_id)
            item = self._require_item(document, item_id)
            item.quantity = quantity
            self._on_quantity_changed(item)
            return self.update(document_id, {"items": document.items})

    def remove_item(self, document_id: str, item_id: str) -> D:
        with self._lock:
            document = self.require(document_id)
            item = self._require_item(document, item_id)
            document.items.remove(item)
            return self.update(document_id, {"items": document.items})

    # ── Item hooks ────────────────────────────────────────────

    def _init_item(self, item: LineItem, **extra) -> None:
        if extra:
            raise InvalidArgumentError(
                f"Unexpected line item fields: {sorted(extra)}"
            )

    def _merge_item(self, item: LineItem, added: int, **extra) -> None:
        self._init_item(item, **extra)

    def _on_quantity_changed(self, item: LineItem) -> None:
        return None

    def _require_item(self, document: D, item_id: str) -> LineItem:
        item = document.find_item(item_id) if item_id else None
        if item is None:
            raise NotFoundError(f"{self.ENTITY_LABEL} item", item_id)
        return item
