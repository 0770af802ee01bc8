"""
DocFlow Sales Engine — Order Service
====================================
Order lifecycle: DRAFT → … → SHIPPED → INVOICED → PAID.

Edges:
- * → SHIPPED (from any other status): stock decreases by each line's
  quantity at the default location; ship_date stamped when unset.
- * → INVOICED: invoice number assigned from the order invoice counter
  and invoice_date stamped, when not already set.
"""

from __future__ import annotations

from typing import List, Optional

from core.collaborators.notifications import TAG_ORDER
from core.documents.workflow import ORDER_WORKFLOW, OrderStatus
from core.lifecycle.engine import EffectPlan, ItemizedLifecycleEngine, movements_for
from core.numbering.models import COUNTER_ORDER, COUNTER_ORDER_INVOICE
from engines.sales.models import Order

EFFECT_ORDER_SHIPPED = "ORDER_SHIPPED"

SHIPPED = OrderStatus.SHIPPED.value
INVOICED = OrderStatus.INVOICED.value


class OrderEngine(ItemizedLifecycleEngine[Order]):
    DOCUMENT_TYPE = Order
    ENTITY_LABEL = "Order"
    ENTITY_TAG = TAG_ORDER
    WORKFLOW = ORDER_WORKFLOW
    NUMBER_COUNTER = COUNTER_ORDER
    DATETIME_FIELDS = frozenset({"order_date", "ship_date", "invoice_date"})

    def list_by_customer(self, customer_id: str) -> List[Order]:
        return self._store.find_where(lambda o: o.customer_id == customer_id)

    def next_invoice_number(self) -> str:
        return self._sequences.next_number(COUNTER_ORDER_INVOICE)

    def _before_save(
        self, document: Order, old_status: str, new_status: str, captured
    ) -> None:
        if new_status == old_status:
            return
        if new_status == SHIPPED and document.ship_date is None:
            document.ship_date = self._now()
        if new_status == INVOICED:
            if not document.invoice_number:
                document.invoice_number = self.next_invoice_number()
            if document.invoice_date is None:
                document.invoice_date = self._now()

    def _plan_effect(
        self, document: Order, old_status: str, new_status: str, captured
    ) -> Optional[EffectPlan]:
        if new_status == SHIPPED and old_status != SHIPPED:
            return EffectPlan(EFFECT_ORDER_SHIPPED, movements_for(document.items, -1))
        return None
