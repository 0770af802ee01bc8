"""
DocFlow Documents — Status Workflow
===================================
Closed status enum per document type plus its transition table.

RULES (NON-NEGOTIABLE):
- Unknown status strings are REJECTED (InvalidArgumentError).
- A self-transition is always allowed: resubmitting the current status
  is a no-op edge, never an error.
- Non-terminal states may move to any known state.
- Terminal states accept only themselves.
- Every rejection is logged.

Definitions are immutable (frozen) and shared by every engine instance.
This file contains NO persistence logic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Type

from core.store.errors import InvalidArgumentError, InvalidTransitionError

logger = logging.getLogger("docflow.lifecycle")


# ══════════════════════════════════════════════════════════════
# STATUS ENUMS
# ══════════════════════════════════════════════════════════════

class OrderStatus(Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    SHIPPING_INSTRUCTED = "SHIPPING_INSTRUCTED"
    SHIPPED = "SHIPPED"
    INVOICED = "INVOICED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PurchaseOrderStatus(Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    RECEIVED = "RECEIVED"
    INVOICED = "INVOICED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class RMAStatus(Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    RECEIVED = "RECEIVED"
    PROCESSED = "PROCESSED"
    CANCELLED = "CANCELLED"


class CorrectionTicketStatus(Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# ══════════════════════════════════════════════════════════════
# WORKFLOW DEFINITION (state machine schema)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Valid states and transitions for one document type.

    Fields:
        name:            Identifier (e.g. "Order"), used in errors and logs
        states:          The closed status enum
        initial_state:   Status assigned when a document is created blank
        terminal_states: States that only accept a self-transition
    """
    name: str
    states: Type[Enum]
    initial_state: str
    terminal_states: FrozenSet[str]

    def __post_init__(self):
        if not self.name:
            raise ValueError("Workflow name must be non-empty.")
        known = self.known_states
        if self.initial_state not in known:
            raise ValueError(
                f"initial_state '{self.initial_state}' is not a {self.name} status."
            )
        unknown = set(self.terminal_states) - known
        if unknown:
            raise ValueError(
                f"terminal_states {sorted(unknown)} are not {self.name} statuses."
            )

    @property
    def known_states(self) -> FrozenSet[str]:
        return frozenset(member.value for member in self.states)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def allowed_next_states(self, from_state: str) -> FrozenSet[str]:
        if self.is_terminal(from_state):
            return frozenset({from_state})
        return self.known_states

    def is_valid_transition(self, from_state: str, to_state: str) -> bool:
        return to_state in self.allowed_next_states(from_state)

    # ── Enforcement ───────────────────────────────────────────

    def validate_state(self, state: Any) -> str:
        """Normalize an enum member or string and reject unknown values."""
        if isinstance(state, Enum):
            state = state.value
        if not isinstance(state, str) or state not in self.known_states:
            logger.warning(f"Rejected unknown {self.name} status: {state!r}")
            raise InvalidArgumentError(
                f"Unknown {self.name} status: {state!r}. "
                f"Allowed: {sorted(self.known_states)}."
            )
        return state

    def check_transition(self, from_state: str, to_state: Any) -> str:
        to_state = self.validate_state(to_state)
        if from_state is None or from_state == to_state:
            return to_state
        if not self.is_valid_transition(from_state, to_state):
            logger.warning(
                f"Rejected {self.name} transition {from_state} → {to_state}"
            )
            raise InvalidTransitionError(
                self.name, from_state, to_state, self.allowed_next_states(from_state)
            )
        return to_state


# ══════════════════════════════════════════════════════════════
# DOCFLOW CANONICAL STATE MACHINES
# ══════════════════════════════════════════════════════════════

ORDER_WORKFLOW = WorkflowDefinition(
    name="Order",
    states=OrderStatus,
    initial_state=OrderStatus.DRAFT.value,
    terminal_states=frozenset({OrderStatus.PAID.value, OrderStatus.CANCELLED.value}),
)

PURCHASE_ORDER_WORKFLOW = WorkflowDefinition(
    name="PurchaseOrder",
    states=PurchaseOrderStatus,
    initial_state=PurchaseOrderStatus.DRAFT.value,
    terminal_states=frozenset(
        {PurchaseOrderStatus.PAID.value, PurchaseOrderStatus.CANCELLED.value}
    ),
)

RMA_WORKFLOW = WorkflowDefinition(
    name="RMA",
    states=RMAStatus,
    initial_state=RMAStatus.DRAFT.value,
    terminal_states=frozenset({RMAStatus.CANCELLED.value}),
)

CORRECTION_TICKET_WORKFLOW = WorkflowDefinition(
    name="CorrectionTicket",
    states=CorrectionTicketStatus,
    initial_state=CorrectionTicketStatus.PENDING.value,
    terminal_states=frozenset(
        {
            CorrectionTicketStatus.COMPLETED.value,
            CorrectionTicketStatus.CANCELLED.value,
        }
    ),
)
