"""
DocFlow — Inventory Effect Recovery Tests
=========================================
A crash between persisting a status change and applying its inventory
effect leaves a pending journal entry. Replaying it must finish the
movement exactly once.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.bootstrap import build_services
from core.collaborators import InMemoryCatalog, InMemoryLocationDirectory, Location, Product
from core.config.settings import DocFlowSettings
from core.documents import LineItem
from core.lifecycle import DocumentLifecycleEngine
from core.store.errors import PersistenceError
from core.time.clock import FixedClock
from engines.inventory.services import InventoryLedger
from engines.sales.models import Order

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)
WH = "wh-1"


class FlakyLedger:
    """Delegates to a real ledger; the Nth adjust fails with a write error."""

    def __init__(self, inner: InventoryLedger, fail_on_call: int):
        self._inner = inner
        self._fail_on_call = fail_on_call
        self.calls = 0

    def adjust(self, product_id, location_id, delta, reference=None):
        self.calls += 1
        if self.calls == self._fail_on_call:
            raise PersistenceError("inventory", "inventory.json", OSError("disk full"))
        return self._inner.adjust(product_id, location_id, delta, reference=reference)

    def forget_references(self, product_id, location_id, references):
        self._inner.forget_references(product_id, location_id, references)


def _services(tmp_path, reconcile=True):
    return build_services(
        settings=DocFlowSettings(data_dir=tmp_path),
        catalog=InMemoryCatalog(
            [
                Product("p-1", "SKU-1", "Widget", Decimal("10.00")),
                Product("p-2", "SKU-2", "Gadget", Decimal("2.50")),
            ]
        ),
        locations=InMemoryLocationDirectory([Location(WH)]),
        clock=FixedClock(NOW),
        reconcile=reconcile,
    )


def _crash_mid_shipment(services):
    """Ship an order while the second ledger write fails."""
    services.ledger.set_absolute("p-1", WH, 10)
    services.ledger.set_absolute("p-2", WH, 10)
    order = services.orders.create(
        Order(items=[LineItem(product_id="p-1", quantity=2), LineItem(product_id="p-2", quantity=5)])
    )
    flaky = FlakyLedger(services.ledger, fail_on_call=2)
    services.orders._ledger = flaky
    with pytest.raises(PersistenceError):
        services.orders.update(order.id, {"status": "SHIPPED"})
    services.orders._ledger = services.ledger
    return order


class TestPendingEffects:
    def test_crash_leaves_pending_entry(self, tmp_path):
        services = _services(tmp_path)
        order = _crash_mid_shipment(services)

        stored = services.orders.get(order.id)

        assert stored.status == "SHIPPED"
        assert stored.pending_effect is not None
        assert services.ledger.quantity_of("p-1", WH) == 8
        assert services.ledger.quantity_of("p-2", WH) == 10
        assert len(services.ledger.get("p-1", WH).applied_refs) == 1

    def test_reconcile_finishes_movement_once(self, tmp_path):
        services = _services(tmp_path)
        order = _crash_mid_shipment(services)

        reconciled = services.orders.reconcile_pending_effects()

        assert [d.id for d in reconciled] == [order.id]
        assert services.ledger.quantity_of("p-1", WH) == 8
        assert services.ledger.quantity_of("p-2", WH) == 5
        entry = services.orders.get(order.id).inventory_effects[0]
        assert entry.applied and entry.applied_at == NOW
        assert services.ledger.get("p-1", WH).applied_refs == []
        assert services.ledger.get("p-2", WH).applied_refs == []
        assert services.orders.reconcile_pending_effects() == []

    def test_startup_replays_pending_entries(self, tmp_path):
        services = _services(tmp_path)
        order = _crash_mid_shipment(services)

        restarted = _services(tmp_path)

        assert restarted.orders.get(order.id).pending_effect is None
        assert restarted.ledger.quantity_of("p-1", WH) == 8
        assert restarted.ledger.quantity_of("p-2", WH) == 5

    def test_startup_replay_can_be_deferred(self, tmp_path):
        services = _services(tmp_path)
        order = _crash_mid_shipment(services)

        restarted = _services(tmp_path, reconcile=False)
        assert restarted.orders.get(order.id).pending_effect is not None

        assert restarted.reconcile_pending_effects() == 1
        assert restarted.ledger.quantity_of("p-2", WH) == 5

    def test_every_engine_supports_replay(self, tmp_path):
        services = _services(tmp_path)
        assert all(isinstance(e, DocumentLifecycleEngine) for e in services.engines)
        assert services.reconcile_pending_effects() == 0
