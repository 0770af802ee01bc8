"""
DocFlow Lifecycle - Public API
==============================
"""

from core.lifecycle.engine import (
    DocumentLifecycleEngine,
    EffectPlan,
    ItemizedLifecycleEngine,
    StockLedger,
    build_document_store,
    movements_for,
    reversed_movements,
)

__all__ = [
    "DocumentLifecycleEngine",
    "ItemizedLifecycleEngine",
    "EffectPlan",
    "StockLedger",
    "build_document_store",
    "movements_for",
    "reversed_movements",
]
