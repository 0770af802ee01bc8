"""
DocFlow Numbering — Public API
==============================
"""

from core.numbering.counter import FileCounter
from core.numbering.gap_filling import (
    GapFillingSequence,
    coerce_numbers,
    smallest_unused,
)
from core.numbering.models import (
    COUNTER_CORRECTION_TICKET,
    COUNTER_ORDER,
    COUNTER_ORDER_INVOICE,
    COUNTER_PURCHASE_ORDER,
    COUNTER_PURCHASE_ORDER_INVOICE,
    COUNTER_RMA,
    DEFAULT_FLOORS,
    POLICY_GAP_FILLING,
    POLICY_MONOTONIC,
    VALID_POLICIES,
    CounterSpec,
)
from core.numbering.provider import SequenceGenerator, SequenceRegistry

__all__ = [
    "CounterSpec",
    "POLICY_MONOTONIC",
    "POLICY_GAP_FILLING",
    "VALID_POLICIES",
    "DEFAULT_FLOORS",
    "COUNTER_ORDER",
    "COUNTER_ORDER_INVOICE",
    "COUNTER_PURCHASE_ORDER",
    "COUNTER_PURCHASE_ORDER_INVOICE",
    "COUNTER_RMA",
    "COUNTER_CORRECTION_TICKET",
    "FileCounter",
    "GapFillingSequence",
    "smallest_unused",
    "coerce_numbers",
    "SequenceGenerator",
    "SequenceRegistry",
]
