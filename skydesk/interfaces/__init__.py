# interfaces/__init__.py
"""
Session State Package

- InventoryStore: flights, bookings and customer profiles
- ConversationStore: chat transcript with pending confirmations
- SnapshotSink: optional write-only Redis snapshot of the inventory
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .inventory_store import InventoryStore, BookingFailure
    from .conversation_store import ConversationStore
    from .snapshot_sink import SnapshotSink, RedisSnapshotSink, build_snapshot_sink

__all__ = [
    "InventoryStore",
    "BookingFailure",
    "ConversationStore",
    "SnapshotSink",
    "RedisSnapshotSink",
    "build_snapshot_sink"
]
