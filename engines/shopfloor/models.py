"""
DocFlow Shopfloor Engine — Correction Ticket
============================================
Shop-floor work raised against a returned item. Carries no line items;
its totals stay zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.documents.models import Document
from core.store.codec import decode_datetime, encode_datetime


@dataclass
class CorrectionTicket(Document):
    rma_id: Optional[str] = None
    rma_number: Optional[str] = None
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    assigned_to: Optional[str] = None

    ITEM_TYPE = None

    def to_dict(self) -> dict:
        data = self._base_to_dict()
        data.update(
            {
                "rma_id": self.rma_id,
                "rma_number": self.rma_number,
                "order_id": self.order_id,
                "order_number": self.order_number,
                "customer_id": self.customer_id,
                "customer_name": self.customer_name,
                "created_at": encode_datetime(self.created_at),
                "started_at": encode_datetime(self.started_at),
                "completed_at": encode_datetime(self.completed_at),
                "assigned_to": self.assigned_to,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CorrectionTicket":
        return cls(
            **cls._base_from_dict(data),
            rma_id=data.get("rma_id"),
            rma_number=data.get("rma_number"),
            order_id=data.get("order_id"),
            order_number=data.get("order_number"),
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            created_at=decode_datetime(data.get("created_at"), "created_at"),
            started_at=decode_datetime(data.get("started_at"), "started_at"),
            completed_at=decode_datetime(data.get("completed_at"), "completed_at"),
            assigned_to=data.get("assigned_to"),
        )
