"""
DocFlow Sales Engine — Order
============================
Customer sales order. `other_charge` carries the shipping cost.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.documents.models import Document
from core.store.codec import decode_datetime, encode_datetime


@dataclass
class Order(Document):
    customer_id: Optional[str] = None
    shipping_address_id: Optional[str] = None
    billing_address_id: Optional[str] = None
    order_date: Optional[datetime] = None
    ship_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[datetime] = None

    @property
    def shipping_cost(self):
        return self.other_charge

    def to_dict(self) -> dict:
        data = self._base_to_dict()
        data.update(
            {
                "customer_id": self.customer_id,
                "shipping_address_id": self.shipping_address_id,
                "billing_address_id": self.billing_address_id,
                "order_date": encode_datetime(self.order_date),
                "ship_date": encode_datetime(self.ship_date),
                "invoice_number": self.invoice_number,
                "invoice_date": encode_datetime(self.invoice_date),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        return cls(
            **cls._base_from_dict(data),
            customer_id=data.get("customer_id"),
            shipping_address_id=data.get("shipping_address_id"),
            billing_address_id=data.get("billing_address_id"),
            order_date=decode_datetime(data.get("order_date"), "order_date"),
            ship_date=decode_datetime(data.get("ship_date"), "ship_date"),
            invoice_number=data.get("invoice_number"),
            invoice_date=decode_datetime(data.get("invoice_date"), "invoice_date"),
        )
