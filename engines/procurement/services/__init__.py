"""
DocFlow Procurement Engine — Purchase Order Service
===================================================
Full purchase lifecycle: create PO → approve → receive → invoice → pay.

Receiving (* → RECEIVED from any other status) restocks each line's
quantity at the default location.
"""

from __future__ import annotations

from typing import List, Optional

from core.collaborators.notifications import TAG_PURCHASE_ORDER
from core.documents.workflow import PURCHASE_ORDER_WORKFLOW, PurchaseOrderStatus
from core.lifecycle.engine import EffectPlan, ItemizedLifecycleEngine, movements_for
from core.numbering.models import (
    COUNTER_PURCHASE_ORDER,
    COUNTER_PURCHASE_ORDER_INVOICE,
)
from engines.procurement.models import PurchaseOrder

EFFECT_PO_RECEIVED = "PURCHASE_ORDER_RECEIVED"

RECEIVED = PurchaseOrderStatus.RECEIVED.value


class PurchaseOrderEngine(ItemizedLifecycleEngine[PurchaseOrder]):
    DOCUMENT_TYPE = PurchaseOrder
    ENTITY_LABEL = "PurchaseOrder"
    ENTITY_TAG = TAG_PURCHASE_ORDER
    WORKFLOW = PURCHASE_ORDER_WORKFLOW
    NUMBER_COUNTER = COUNTER_PURCHASE_ORDER
    DATETIME_FIELDS = frozenset({"order_date", "expected_delivery_date", "invoice_date"})

    def list_by_supplier(self, supplier_id: str) -> List[PurchaseOrder]:
        return self._store.find_where(lambda po: po.supplier_id == supplier_id)

    def next_invoice_number(self) -> str:
        return self._sequences.next_number(COUNTER_PURCHASE_ORDER_INVOICE)

    def _plan_effect(
        self, document: PurchaseOrder, old_status: str, new_status: str, captured
    ) -> Optional[EffectPlan]:
        if new_status == RECEIVED and old_status != RECEIVED:
            return EffectPlan(EFFECT_PO_RECEIVED, movements_for(document.items, 1))
        return None
