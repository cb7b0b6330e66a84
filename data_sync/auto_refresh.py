"""
Declarative refresh bindings for UI surfaces.

A surface states which event types it cares about and gets its refresh
callback run whenever a matching event arrives, from any tab, for any
action, including events caused by its own writes.
"""

import logging
from typing import Callable, Iterable, Optional, Union

from data_sync.events import ChangeEvent, SyncEventType
from data_sync.registry import Unsubscribe
from data_sync.sync import DataSync

logger = logging.getLogger("auto_refresh")


class AutoRefresh:
    """
    Subscription that calls `on_refresh()` for events of the given types.

    Bind it when the surface mounts and close it when the surface goes away,
    so no refresh fires into a surface that no longer exists.

    Example:
        with AutoRefresh(sync, ["products", "inventory"], reload_products):
            ...   # reload_products() runs after every matching change
    """

    def __init__(
        self,
        sync: DataSync,
        types: Iterable[Union[SyncEventType, str]],
        on_refresh: Callable[[], None],
    ):
        self.sync = sync
        self.types = frozenset(SyncEventType(t) for t in types)
        self.on_refresh = on_refresh
        self.refresh_count = 0
        self._unsubscribe: Optional[Unsubscribe] = None

    def bind(self) -> "AutoRefresh":
        if self._unsubscribe is None:
            self._unsubscribe = self.sync.subscribe_to_changes(self._on_change)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def is_bound(self) -> bool:
        return self._unsubscribe is not None

    def matches(self, event: ChangeEvent) -> bool:
        return event.type in self.types

    def _on_change(self, event: ChangeEvent) -> None:
        if not self.matches(event):
            return
        self.refresh_count += 1
        self.on_refresh()

    def __enter__(self) -> "AutoRefresh":
        return self.bind()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def auto_refresh(
    sync: DataSync,
    types: Iterable[Union[SyncEventType, str]],
    on_refresh: Callable[[], None],
) -> AutoRefresh:
    """Create and bind an AutoRefresh in one step."""
    binding = AutoRefresh(sync, types, on_refresh).bind()
    logger.debug(f"Auto-refresh bound for {sorted(t.value for t in binding.types)}")
    return binding
