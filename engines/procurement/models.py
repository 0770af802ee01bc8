"""
DocFlow Procurement Engine — Purchase Order
===========================================
Order placed with a supplier. `other_charge` carries the shipping cost.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.documents.models import Document
from core.store.codec import decode_datetime, encode_datetime


@dataclass
class PurchaseOrder(Document):
    supplier_id: Optional[str] = None
    shipping_address_id: Optional[str] = None
    billing_address_id: Optional[str] = None
    order_date: Optional[datetime] = None
    expected_delivery_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = self._base_to_dict()
        data.update(
            {
                "supplier_id": self.supplier_id,
                "shipping_address_id": self.shipping_address_id,
                "billing_address_id": self.billing_address_id,
                "order_date": encode_datetime(self.order_date),
                "expected_delivery_date": encode_datetime(self.expected_delivery_date),
                "invoice_number": self.invoice_number,
                "invoice_date": encode_datetime(self.invoice_date),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PurchaseOrder":
        return cls(
            **cls._base_from_dict(data),
            supplier_id=data.get("supplier_id"),
            shipping_address_id=data.get("shipping_address_id"),
            billing_address_id=data.get("billing_address_id"),
            order_date=decode_datetime(data.get("order_date"), "order_date"),
            expected_delivery_date=decode_datetime(
                data.get("expected_delivery_date"), "expected_delivery_date"
            ),
            invoice_number=data.get("invoice_number"),
            invoice_date=decode_datetime(data.get("invoice_date"), "invoice_date"),
        )
