"""
DocFlow Returns Engine — RMA Service
====================================
Return lifecycle: DRAFT → APPROVED → RECEIVED → PROCESSED.

Edges:
- * → RECEIVED or * → PROCESSED while not already received: restock
  each line's returned_quantity at the default location and stamp
  received_at when unset.
- RECEIVED|PROCESSED → CANCELLED while already received: roll the
  restock back, at the location it went to.

"Already received" is read from the STORED document before changes.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from core.collaborators.notifications import TAG_RMA
from core.documents.models import ITEM_CONDITIONS, ReturnLineItem
from core.documents.money import to_quantity
from core.documents.workflow import RMA_WORKFLOW, RMAStatus
from core.lifecycle.engine import (
    EffectPlan,
    ItemizedLifecycleEngine,
    movements_for,
    reversed_movements,
)
from core.numbering.models import COUNTER_RMA
from core.store.errors import InvalidArgumentError
from engines.returns.models import RECEIVED_STATES, ReturnAuthorization

logger = logging.getLogger("docflow.lifecycle")

EFFECT_RMA_RECEIVED = "RMA_RECEIVED"
EFFECT_RMA_CANCELLED = "RMA_RECEIPT_ROLLED_BACK"

CANCELLED = RMAStatus.CANCELLED.value


class OrderLookup(Protocol):
    def get(self, document_id: str) -> Optional[Any]:
        ...


@dataclass(frozen=True)
class _StoredState:
    was_received: bool
    items: tuple


def _validate_condition(condition: Any) -> str:
    if condition not in ITEM_CONDITIONS:
        raise InvalidArgumentError(
            f"Unknown item condition: {condition!r}. "
            f"Allowed: {sorted(ITEM_CONDITIONS)}."
        )
    return condition


class RMAEngine(ItemizedLifecycleEngine[ReturnAuthorization]):
    DOCUMENT_TYPE = ReturnAuthorization
    ENTITY_LABEL = "RMA"
    ENTITY_TAG = TAG_RMA
    WORKFLOW = RMA_WORKFLOW
    NUMBER_COUNTER = COUNTER_RMA
    DATETIME_FIELDS = frozenset({"rma_date", "received_at"})

    def __init__(self, *, orders: Optional[OrderLookup] = None, **kwargs):
        super().__init__(**kwargs)
        self._orders = orders

    # ── Queries ───────────────────────────────────────────────

    def list_by_order(self, order_id: str) -> List[ReturnAuthorization]:
        return self._store.find_where(lambda r: r.order_id == order_id)

    def list_by_customer(self, customer_id: str) -> List[ReturnAuthorization]:
        return self._store.find_where(lambda r: r.customer_id == customer_id)

    # ── Item operations ───────────────────────────────────────

    def add_item(
        self,
        document_id: str,
        product_id: str,
        quantity: int,
        reason: Optional[str] = None,
    ) -> ReturnAuthorization:
        return super().add_item(document_id, product_id, quantity, reason=reason)

    def update_item_returned_quantity(
        self, document_id: str, item_id: str, returned_quantity: int
    ) -> ReturnAuthorization:
        returned_quantity = to_quantity(returned_quantity, "returned_quantity")
        with self._lock:
            document = self.require(document_id)
            item = self._require_item(document, item_id)
            item.returned_quantity = returned_quantity
            return self.update(document_id, {"items": document.items})

    def update_item_condition(
        self, document_id: str, item_id: str, condition: str
    ) -> ReturnAuthorization:
        condition = _validate_condition(condition)
        with self._lock:
            document = self.require(document_id)
            item = self._require_item(document, item_id)
            item.condition = condition
            return self.update(document_id, {"items": document.items})

    def _init_item(self, item: ReturnLineItem, reason: Optional[str] = None) -> None:
        item.returned_quantity = item.quantity
        item.reason = reason or ""

    def _merge_item(
        self, item: ReturnLineItem, added: int, reason: Optional[str] = None
    ) -> None:
        item.returned_quantity = item.quantity

    def _on_quantity_changed(self, item: ReturnLineItem) -> None:
        if item.returned_quantity is None or item.returned_quantity > item.quantity:
            item.returned_quantity = item.quantity

    # ── Hooks ─────────────────────────────────────────────────

    def _enrich_items(self, document: ReturnAuthorization) -> None:
        super()._enrich_items(document)
        for item in document.items:
            if item.returned_quantity is None:
                item.returned_quantity = item.quantity
            else:
                item.returned_quantity = to_quantity(
                    item.returned_quantity, "returned_quantity"
                )
            _validate_condition(item.condition)

    def _on_create(self, document: ReturnAuthorization) -> None:
        if not document.order_id or self._orders is None:
            return
        order = self._orders.get(document.order_id)
        if order is None:
            logger.warning(
                f"RMA references unknown order {document.order_id}; "
                f"order details not filled"
            )
            return
        document.order_number = order.number
        if document.customer_id is None and order.customer_id is not None:
            document.customer_id = order.customer_id

    def _capture(self, document: ReturnAuthorization) -> _StoredState:
        return _StoredState(
            was_received=document.is_received,
            items=tuple(copy.deepcopy(document.items)),
        )

    def _before_save(
        self,
        document: ReturnAuthorization,
        old_status: str,
        new_status: str,
        captured: _StoredState,
    ) -> None:
        if new_status in RECEIVED_STATES and not captured.was_received:
            if document.received_at is None:
                document.received_at = self._now()

    def _plan_effect(
        self,
        document: ReturnAuthorization,
        old_status: str,
        new_status: str,
        captured: _StoredState,
    ) -> Optional[EffectPlan]:
        if new_status in RECEIVED_STATES and not captured.was_received:
            return EffectPlan(EFFECT_RMA_RECEIVED, movements_for(document.items, 1))

        if new_status == CANCELLED and captured.was_received:
            receipt = document.last_applied_effect(EFFECT_RMA_RECEIVED)
            if receipt is not None:
                return EffectPlan(
                    EFFECT_RMA_CANCELLED,
                    reversed_movements(receipt),
                    location_id=receipt.location_id,
                )
            # received before the journal existed: undo the stored lines
            return EffectPlan(
                EFFECT_RMA_CANCELLED, movements_for(list(captured.items), -1)
            )
        return None
