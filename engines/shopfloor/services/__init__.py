"""
DocFlow Shopfloor Engine — Correction Ticket Service
====================================================
Ticket lifecycle: PENDING → IN_PROGRESS → COMPLETED.

Tickets never move stock. Entering IN_PROGRESS stamps started_at,
entering COMPLETED stamps completed_at.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from core.collaborators.notifications import TAG_CORRECTION_TICKET
from core.documents.workflow import CORRECTION_TICKET_WORKFLOW, CorrectionTicketStatus
from core.lifecycle.engine import DocumentLifecycleEngine
from core.numbering.models import COUNTER_CORRECTION_TICKET
from core.store.errors import NotFoundError
from engines.shopfloor.models import CorrectionTicket

logger = logging.getLogger("docflow.lifecycle")

IN_PROGRESS = CorrectionTicketStatus.IN_PROGRESS.value
COMPLETED = CorrectionTicketStatus.COMPLETED.value

# (ticket field, RMA field) pairs copied when a ticket references an RMA
_RMA_FIELDS = (
    ("rma_number", "number"),
    ("order_id", "order_id"),
    ("order_number", "order_number"),
    ("customer_id", "customer_id"),
    ("customer_name", "customer_name"),
)


class RMALookup(Protocol):
    def get(self, document_id: str) -> Optional[Any]:
        ...


class CorrectionTicketEngine(DocumentLifecycleEngine[CorrectionTicket]):
    DOCUMENT_TYPE = CorrectionTicket
    ENTITY_LABEL = "CorrectionTicket"
    ENTITY_TAG = TAG_CORRECTION_TICKET
    WORKFLOW = CORRECTION_TICKET_WORKFLOW
    NUMBER_COUNTER = COUNTER_CORRECTION_TICKET
    DATETIME_FIELDS = frozenset({"created_at", "started_at", "completed_at"})

    def __init__(self, *, rmas: Optional[RMALookup] = None, **kwargs):
        super().__init__(**kwargs)
        self._rmas = rmas

    def list_by_rma(self, rma_id: str) -> List[CorrectionTicket]:
        return self._store.find_where(lambda t: t.rma_id == rma_id)

    def create_from_rma(self, rma_id: str) -> CorrectionTicket:
        """Open a ticket for an RMA, or return the one already open."""
        self._require_id(rma_id)
        rma = self._rmas.get(rma_id) if self._rmas is not None else None
        if rma is None:
            raise NotFoundError("RMA", rma_id)

        with self._lock:
            existing = self.list_by_rma(rma_id)
            if existing:
                logger.info(
                    f"CorrectionTicket {existing[0].number} already exists "
                    f"for RMA {rma.number}"
                )
                return existing[0]
            return self.create(CorrectionTicket(rma_id=rma_id))

    # ── Hooks ─────────────────────────────────────────────────

    def _on_create(self, document: CorrectionTicket) -> None:
        if document.created_at is None:
            document.created_at = self._now()
        if not document.rma_id or self._rmas is None:
            return
        rma = self._rmas.get(document.rma_id)
        if rma is None:
            logger.warning(
                f"CorrectionTicket references unknown RMA {document.rma_id}; "
                f"RMA details not filled"
            )
            return
        for ticket_field, rma_field in _RMA_FIELDS:
            if getattr(document, ticket_field) is None:
                setattr(document, ticket_field, getattr(rma, rma_field))

    def _before_save(
        self, document: CorrectionTicket, old_status: str, new_status: str, captured
    ) -> None:
        if new_status == old_status:
            return
        if new_status == IN_PROGRESS:
            document.started_at = self._now()
        elif new_status == COMPLETED:
            document.completed_at = self._now()
