"""
DocFlow Core Config — Public API
================================
Data directory, collection file names and per-counter numbering policy.
"""

from core.config.settings import (
    CORRECTION_TICKETS_FILE,
    INVENTORY_FILE,
    ORDERS_FILE,
    PURCHASE_ORDERS_FILE,
    RMAS_FILE,
    DocFlowSettings,
)

__all__ = [
    "DocFlowSettings",
    "ORDERS_FILE",
    "PURCHASE_ORDERS_FILE",
    "RMAS_FILE",
    "CORRECTION_TICKETS_FILE",
    "INVENTORY_FILE",
]
