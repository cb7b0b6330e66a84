"""
Cross-tab data synchronization for the storefront console.

This package keeps several tabs sharing one origin storage consistent:
- Mutators save a whole collection, then broadcast a change event
- The broadcaster delivers it to this tab's registry and to other tabs
- Auto-refresh bindings re-read collections when a matching event arrives
Conflicting saves from different tabs are resolved by last writer wins.
"""

from data_sync.events import ChangeEvent, ChangeAction, SyncEventType, MalformedEventError
from data_sync.registry import SubscriptionRegistry
from data_sync.sync import DataSync
from data_sync.auto_refresh import AutoRefresh, auto_refresh
from data_sync.transports import (
    EventTransport,
    BroadcastHub,
    BroadcastChannelTransport,
    StorageEnvelopeTransport,
    NullTransport,
    select_transport,
)
from data_sync.browser import Origin, Tab

__all__ = [
    "ChangeEvent",
    "ChangeAction",
    "SyncEventType",
    "MalformedEventError",
    "SubscriptionRegistry",
    "DataSync",
    "AutoRefresh",
    "auto_refresh",
    "EventTransport",
    "BroadcastHub",
    "BroadcastChannelTransport",
    "StorageEnvelopeTransport",
    "NullTransport",
    "select_transport",
    "Origin",
    "Tab",
]
