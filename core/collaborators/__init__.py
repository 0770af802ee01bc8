"""
DocFlow Collaborators — Public API
==================================
Interfaces to the systems the lifecycle engines depend on but do not own.
"""

from core.collaborators.catalog import CatalogLookup, InMemoryCatalog, Product
from core.collaborators.locations import (
    InMemoryLocationDirectory,
    Location,
    LocationDirectory,
    resolve_default_location,
)
from core.collaborators.notifications import (
    TAG_CORRECTION_TICKET,
    TAG_INVENTORY,
    TAG_ORDER,
    TAG_PURCHASE_ORDER,
    TAG_RMA,
    Notification,
    NotificationSink,
    NullNotificationSink,
    RecordingNotificationSink,
    SafeNotifier,
)

__all__ = [
    "Product",
    "CatalogLookup",
    "InMemoryCatalog",
    "Location",
    "LocationDirectory",
    "InMemoryLocationDirectory",
    "resolve_default_location",
    "NotificationSink",
    "NullNotificationSink",
    "RecordingNotificationSink",
    "Notification",
    "SafeNotifier",
    "TAG_ORDER",
    "TAG_PURCHASE_ORDER",
    "TAG_RMA",
    "TAG_CORRECTION_TICKET",
    "TAG_INVENTORY",
]
