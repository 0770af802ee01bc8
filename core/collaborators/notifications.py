"""
DocFlow Collaborators — Notification Sink
=========================================
Pushes document changes to whoever is listening (a WebSocket broadcaster
in production).

Delivery is best-effort:
1. Engines persist first, notify second.
2. A sink failure is caught and logged with traceback.
3. It NEVER propagates and NEVER rolls back the mutation.

The sink is always present: NullNotificationSink is the default, so
business logic has no None checks.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Protocol

logger = logging.getLogger("docflow.notifications")

TAG_ORDER = "order"
TAG_PURCHASE_ORDER = "purchaseorder"
TAG_RMA = "rma"
TAG_CORRECTION_TICKET = "sfc"
TAG_INVENTORY = "inventory"


class NotificationSink(Protocol):
    def on_update(self, entity_tag: str, entity: Any) -> None:
        ...

    def on_delete(self, entity_tag: str, entity_id: str) -> None:
        ...


class NullNotificationSink:
    """Default sink: drops every notification."""

    def on_update(self, entity_tag: str, entity: Any) -> None:
        return None

    def on_delete(self, entity_tag: str, entity_id: str) -> None:
        return None


@dataclass(frozen=True)
class Notification:
    kind: str  # "update" | "delete"
    entity_tag: str
    payload: Any


class RecordingNotificationSink:
    """Thread-safe in-memory sink for tests and local wiring."""

    def __init__(self):
        self._lock = threading.Lock()
        self._notifications: List[Notification] = []

    def on_update(self, entity_tag: str, entity: Any) -> None:
        with self._lock:
            self._notifications.append(Notification("update", entity_tag, entity))

    def on_delete(self, entity_tag: str, entity_id: str) -> None:
        with self._lock:
            self._notifications.append(Notification("delete", entity_tag, entity_id))

    @property
    def notifications(self) -> tuple[Notification, ...]:
        with self._lock:
            return tuple(self._notifications)

    def for_tag(self, entity_tag: str) -> tuple[Notification, ...]:
        return tuple(n for n in self.notifications if n.entity_tag == entity_tag)


class SafeNotifier:
    """Wraps a sink so no failure ever reaches the caller."""

    def __init__(self, sink: NotificationSink | None = None):
        self._sink = sink if sink is not None else NullNotificationSink()

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    def updated(self, entity_tag: str, entity: Any) -> bool:
        try:
            self._sink.on_update(entity_tag, entity)
            return True
        except Exception as exc:
            logger.error(
                f"Notification sink failed on {entity_tag} update: {exc}",
                exc_info=True,
            )
            return False

    def deleted(self, entity_tag: str, entity_id: str) -> bool:
        try:
            self._sink.on_delete(entity_tag, entity_id)
            return True
        except Exception as exc:
            logger.error(
                f"Notification sink failed on {entity_tag} delete "
                f"({entity_id}): {exc}",
                exc_info=True,
            )
            return False
