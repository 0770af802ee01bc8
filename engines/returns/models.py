"""
DocFlow Returns Engine — Return Authorization (RMA)
===================================================
Customer return against a sales order.

`other_charge` is the signed restocking adjustment: a restocking fee
is stored negative so total = subtotal + tax + other_charge holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.documents.models import Document, ReturnLineItem
from core.documents.workflow import RMAStatus
from core.store.codec import decode_datetime, encode_datetime

RECEIVED_STATES = frozenset({RMAStatus.RECEIVED.value, RMAStatus.PROCESSED.value})


@dataclass
class ReturnAuthorization(Document):
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    rma_date: Optional[datetime] = None
    received_at: Optional[datetime] = None

    ITEM_TYPE = ReturnLineItem

    @property
    def restocking_fee(self):
        return -self.other_charge

    @property
    def is_received(self) -> bool:
        """Goods are in: RECEIVED or PROCESSED with a receipt stamp."""
        return self.status in RECEIVED_STATES and self.received_at is not None

    def to_dict(self) -> dict:
        data = self._base_to_dict()
        data.update(
            {
                "order_id": self.order_id,
                "order_number": self.order_number,
                "customer_id": self.customer_id,
                "customer_name": self.customer_name,
                "rma_date": encode_datetime(self.rma_date),
                "received_at": encode_datetime(self.received_at),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ReturnAuthorization":
        return cls(
            **cls._base_from_dict(data),
            order_id=data.get("order_id"),
            order_number=data.get("order_number"),
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            rma_date=decode_datetime(data.get("rma_date"), "rma_date"),
            received_at=decode_datetime(data.get("received_at"), "received_at"),
        )
