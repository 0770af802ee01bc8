"""
DocFlow Documents - Public API
==============================
"""

from core.documents.models import (
    DEFAULT_ITEM_CONDITION,
    DERIVED_FIELDS,
    ITEM_CONDITIONS,
    Document,
    InventoryEffect,
    InventoryMovement,
    LineItem,
    ReturnLineItem,
)
from core.documents.money import ZERO, to_money, to_quantity
from core.documents.workflow import (
    CORRECTION_TICKET_WORKFLOW,
    ORDER_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
    RMA_WORKFLOW,
    CorrectionTicketStatus,
    OrderStatus,
    PurchaseOrderStatus,
    RMAStatus,
    WorkflowDefinition,
)

__all__ = [
    "Document",
    "LineItem",
    "ReturnLineItem",
    "InventoryEffect",
    "InventoryMovement",
    "ITEM_CONDITIONS",
    "DEFAULT_ITEM_CONDITION",
    "DERIVED_FIELDS",
    "ZERO",
    "to_money",
    "to_quantity",
    "WorkflowDefinition",
    "OrderStatus",
    "PurchaseOrderStatus",
    "RMAStatus",
    "CorrectionTicketStatus",
    "ORDER_WORKFLOW",
    "PURCHASE_ORDER_WORKFLOW",
    "RMA_WORKFLOW",
    "CORRECTION_TICKET_WORKFLOW",
]
