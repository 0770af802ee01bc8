"""
DocFlow Bootstrap — Wiring
==========================
Constructs the stores, counters, ledger and lifecycle engines for one
data directory.

This module is glue only:
- no business rules
- one DocumentStore per entity file
- one SequenceRegistry shared by every engine
- gap-filling counters read the numbers of their own collection
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.collaborators.catalog import CatalogLookup, InMemoryCatalog
from core.collaborators.locations import InMemoryLocationDirectory, LocationDirectory
from core.collaborators.notifications import NotificationSink, SafeNotifier
from core.config.settings import (
    CORRECTION_TICKETS_FILE,
    INVENTORY_FILE,
    ORDERS_FILE,
    PURCHASE_ORDERS_FILE,
    RMAS_FILE,
    DocFlowSettings,
)
from core.lifecycle.engine import build_document_store
from core.numbering.models import (
    COUNTER_CORRECTION_TICKET,
    COUNTER_ORDER,
    COUNTER_ORDER_INVOICE,
    COUNTER_PURCHASE_ORDER,
    COUNTER_PURCHASE_ORDER_INVOICE,
    COUNTER_RMA,
)
from core.numbering.provider import SequenceRegistry
from core.store.document_store import DocumentStore
from core.time.clock import Clock, SystemClock
from engines.inventory.services import InventoryLedger, build_inventory_store
from engines.procurement.models import PurchaseOrder
from engines.procurement.services import PurchaseOrderEngine
from engines.returns.models import ReturnAuthorization
from engines.returns.services import RMAEngine
from engines.sales.models import Order
from engines.sales.services import OrderEngine
from engines.shopfloor.models import CorrectionTicket
from engines.shopfloor.services import CorrectionTicketEngine

logger = logging.getLogger("docflow.bootstrap")


@dataclass(frozen=True)
class DocFlowServices:
    settings: DocFlowSettings
    sequences: SequenceRegistry
    ledger: InventoryLedger
    orders: OrderEngine
    purchase_orders: PurchaseOrderEngine
    rmas: RMAEngine
    correction_tickets: CorrectionTicketEngine

    @property
    def engines(self) -> tuple:
        return (self.orders, self.purchase_orders, self.rmas, self.correction_tickets)

    def reconcile_pending_effects(self) -> int:
        """Replay effects a crash left unapplied; returns documents touched."""
        return sum(len(engine.reconcile_pending_effects()) for engine in self.engines)


def _numbers_of(store: DocumentStore, attribute: str = "number"):
    return lambda: [getattr(document, attribute) for document in store.find_all()]


def build_services(
    settings: Optional[DocFlowSettings] = None,
    catalog: Optional[CatalogLookup] = None,
    locations: Optional[LocationDirectory] = None,
    sink: Optional[NotificationSink] = None,
    clock: Optional[Clock] = None,
    reconcile: bool = True,
) -> DocFlowServices:
    settings = settings or DocFlowSettings.from_env()
    catalog = catalog if catalog is not None else InMemoryCatalog()
    locations = locations if locations is not None else InMemoryLocationDirectory()
    notifier = SafeNotifier(sink)
    clock = clock or SystemClock()
    quarantine = settings.quarantine_corrupt_files

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Wiring DocFlow services on data directory {settings.data_dir}")

    order_store = build_document_store(
        settings.path_for(ORDERS_FILE), "orders", Order, quarantine
    )
    po_store = build_document_store(
        settings.path_for(PURCHASE_ORDERS_FILE), "purchase orders", PurchaseOrder, quarantine
    )
    rma_store = build_document_store(
        settings.path_for(RMAS_FILE), "RMAs", ReturnAuthorization, quarantine
    )
    ticket_store = build_document_store(
        settings.path_for(CORRECTION_TICKETS_FILE),
        "correction tickets",
        CorrectionTicket,
        quarantine,
    )
    inventory_store = build_inventory_store(settings.path_for(INVENTORY_FILE), quarantine)

    sequences = SequenceRegistry(settings.data_dir, settings.counter_specs())
    sequences.register_supplier(COUNTER_ORDER, _numbers_of(order_store))
    sequences.register_supplier(
        COUNTER_ORDER_INVOICE, _numbers_of(order_store, "invoice_number")
    )
    sequences.register_supplier(COUNTER_PURCHASE_ORDER, _numbers_of(po_store))
    sequences.register_supplier(
        COUNTER_PURCHASE_ORDER_INVOICE, _numbers_of(po_store, "invoice_number")
    )
    sequences.register_supplier(COUNTER_RMA, _numbers_of(rma_store))
    sequences.register_supplier(COUNTER_CORRECTION_TICKET, _numbers_of(ticket_store))

    ledger = InventoryLedger(inventory_store, notifier)
    common = dict(
        sequences=sequences,
        ledger=ledger,
        catalog=catalog,
        locations=locations,
        notifier=notifier,
        clock=clock,
    )
    orders = OrderEngine(store=order_store, **common)
    purchase_orders = PurchaseOrderEngine(store=po_store, **common)
    rmas = RMAEngine(store=rma_store, orders=orders, **common)
    correction_tickets = CorrectionTicketEngine(store=ticket_store, rmas=rmas, **common)

    services = DocFlowServices(
        settings=settings,
        sequences=sequences,
        ledger=ledger,
        orders=orders,
        purchase_orders=purchase_orders,
        rmas=rmas,
        correction_tickets=correction_tickets,
    )
    if reconcile:
        replayed = services.reconcile_pending_effects()
        if replayed:
            logger.warning(f"Replayed pending inventory effects on {replayed} documents")
    return services
