"""
Origin-wide key-value storage with cross-tab change notifications.

This module models the local storage of a browser origin. One `StorageArea`
holds the data for the whole origin; every tab opens its own `LocalStorage`
handle onto it.

Design decisions:
- Values are strings (callers serialize to JSON themselves)
- A write through one handle notifies the listeners of every OTHER handle
  attached to the same area; the writer never hears its own writes
- Writing the value that is already stored produces no notification
- Delivery is synchronous, in attachment order
- No locking or versioning: the last write to a key wins
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional
from uuid import uuid4

logger = logging.getLogger("storage")


@dataclass(frozen=True)
class StorageEvent:
    """
    Notification that a key changed in another tab.

    `new_value` is None when the key was removed (or the area cleared, in
    which case `key` is None as well).
    """
    key: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]


StorageListener = Callable[[StorageEvent], None]


class StorageArea:
    """
    The shared backing map of one origin.

    Tabs never touch this directly; they go through `LocalStorage` so that
    the area knows which handle made each change.
    """

    def __init__(self):
        self._data: dict[str, str] = {}
        self._handles: list["LocalStorage"] = []

    def open(self, name: Optional[str] = None) -> "LocalStorage":
        """Attach a new tab handle to this area."""
        return LocalStorage(self, name=name)

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw contents (useful for debugging and tests)."""
        return dict(self._data)

    @property
    def handle_count(self) -> int:
        return len(self._handles)

    def _attach(self, handle: "LocalStorage") -> None:
        self._handles.append(handle)

    def _detach(self, handle: "LocalStorage") -> None:
        try:
            self._handles.remove(handle)
        except ValueError:
            pass

    def _write(self, origin: "LocalStorage", key: str, value: Optional[str]) -> None:
        old_value = self._data.get(key)
        if value is None:
            if key not in self._data:
                return
            del self._data[key]
        else:
            if old_value == value:
                return
            self._data[key] = value
        self._notify(origin, StorageEvent(key=key, old_value=old_value, new_value=value))

    def _clear(self, origin: "LocalStorage") -> None:
        if not self._data:
            return
        self._data.clear()
        self._notify(origin, StorageEvent(key=None, old_value=None, new_value=None))

    def _notify(self, origin: "LocalStorage", event: StorageEvent) -> None:
        for handle in list(self._handles):
            if handle is not origin:
                handle._dispatch(event)


class LocalStorage:
    """
    One tab's view of the origin storage.

    Reads and writes go straight to the shared area. Storage listeners
    registered here receive changes made by other tabs only.

    Example:
        area = StorageArea()
        admin, shop = area.open("admin"), area.open("shop")
        shop.add_listener(lambda e: print(e.key, e.new_value))
        admin.set_item("products", "[]")   # shop's listener fires
    """

    def __init__(self, area: StorageArea, name: Optional[str] = None):
        self.area = area
        self.name = name or f"tab-{uuid4().hex[:8]}"
        self._listeners: dict[int, StorageListener] = {}
        self._next_token = 0
        self._attached = True
        area._attach(self)

    # =========================================================================
    # Key-value operations
    # =========================================================================

    def get_item(self, key: str) -> Optional[str]:
        return self.area._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Storage values must be strings, got {type(value).__name__}")
        self.area._write(self, key, value)

    def remove_item(self, key: str) -> None:
        self.area._write(self, key, None)

    def clear(self) -> None:
        self.area._clear(self)

    def keys(self) -> list[str]:
        return list(self.area._data.keys())

    def __len__(self) -> int:
        return len(self.area._data)

    def __contains__(self, key: object) -> bool:
        return key in self.area._data

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    # =========================================================================
    # Change notifications
    # =========================================================================

    def add_listener(self, listener: StorageListener) -> Callable[[], None]:
        """
        Register a listener for changes made by other tabs.

        Returns a function that removes the listener; calling it more than
        once is harmless.
        """
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener

        def remove() -> None:
            self._listeners.pop(token, None)

        return remove

    def detach(self) -> None:
        """Stop receiving notifications (the tab is closing)."""
        if self._attached:
            self.area._detach(self)
            self._attached = False
        self._listeners.clear()

    @property
    def is_attached(self) -> bool:
        return self._attached

    def _dispatch(self, event: StorageEvent) -> None:
        for token, listener in list(self._listeners.items()):
            if token not in self._listeners:
                continue
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Storage listener in {self.name} failed for key '{event.key}': {e}")

    def __repr__(self) -> str:
        return f"LocalStorage(name={self.name!r}, keys={len(self)})"
