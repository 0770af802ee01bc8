"""
DocFlow Numbering — Counter Models
==================================
Declares the counters that issue human-readable document numbers.

Doctrine:
- One counter per (document type, purpose) pair.
- Each counter owns its own floor so number ranges never collide.
- The policy (MONOTONIC or GAP_FILLING) is chosen per counter.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Policy identifiers
# ---------------------------------------------------------------------------

POLICY_MONOTONIC = "MONOTONIC"      # durable counter file, never reuses
POLICY_GAP_FILLING = "GAP_FILLING"  # smallest free number ≥ floor

VALID_POLICIES = frozenset({POLICY_MONOTONIC, POLICY_GAP_FILLING})

# ---------------------------------------------------------------------------
# Counter names and floors
# ---------------------------------------------------------------------------

COUNTER_ORDER = "order"
COUNTER_ORDER_INVOICE = "invoice"
COUNTER_PURCHASE_ORDER = "purchase_order"
COUNTER_PURCHASE_ORDER_INVOICE = "po_invoice"
COUNTER_RMA = "rma"
COUNTER_CORRECTION_TICKET = "sfc"

DEFAULT_FLOORS = {
    COUNTER_ORDER: 100000,
    COUNTER_ORDER_INVOICE: 200000,
    COUNTER_PURCHASE_ORDER: 300000,
    COUNTER_PURCHASE_ORDER_INVOICE: 400000,
    COUNTER_RMA: 500000,
    COUNTER_CORRECTION_TICKET: 600000,
}


@dataclass(frozen=True)
class CounterSpec:
    """
    Declares one independent number sequence.

    Fields:
        name:   counter identity, also the counter file stem
        floor:  lowest value the counter may hold
        policy: MONOTONIC or GAP_FILLING
    """
    name: str
    floor: int
    policy: str = POLICY_MONOTONIC

    def __post_init__(self):
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be a non-empty string.")
        if not isinstance(self.floor, int) or isinstance(self.floor, bool):
            raise ValueError("floor must be int.")
        if self.floor < 0:
            raise ValueError("floor must be >= 0.")
        if self.policy not in VALID_POLICIES:
            raise ValueError(
                f"policy '{self.policy}' is not valid. "
                f"Must be one of: {sorted(VALID_POLICIES)}"
            )

    @property
    def file_name(self) -> str:
        return f"{self.name}_counter.txt"

    def format_number(self, value: int) -> str:
        """Document numbers are the plain decimal string of the value."""
        return str(value)
