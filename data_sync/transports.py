"""
Cross-tab transports for change events.

A transport carries a change event from the tab that broadcast it to every
other tab on the same origin, where it is fed into that tab's registry. The
sync core only sees the abstract `EventTransport`.

Implementations:
- BroadcastChannelTransport: posts the wire dict on a named pub/sub channel
- StorageEnvelopeTransport: writes the wire JSON to a well-known storage key
  (then removes it) so other tabs get a storage change notification
- NullTransport: no cross-tab delivery at all

`select_transport` picks exactly one per tab, by capability, so a remote tab
never receives the same broadcast twice.
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Optional

from data_sync.config import SyncSettings
from data_sync.events import ChangeEvent
from storefront.storage import LocalStorage, StorageEvent

logger = logging.getLogger("sync_transport")


# Called with the raw payload (dict or JSON text); parsing is the caller's job
Deliver = Callable[[Any], None]


class TransportUnavailableError(RuntimeError):
    """The transport cannot publish (closed, or never opened)."""


# =============================================================================
# Broadcast channel primitive
# =============================================================================

class BroadcastHub:
    """
    Registry of named broadcast channels for one origin.

    Stands in for the browser's BroadcastChannel scope: channels with the
    same name on the same hub can reach each other.
    """

    def __init__(self):
        self._channels: dict[str, list["BroadcastChannel"]] = defaultdict(list)

    def channel(self, name: str) -> "BroadcastChannel":
        return BroadcastChannel(name, self)

    def channel_count(self, name: str) -> int:
        return len(self._channels.get(name, []))

    def _join(self, channel: "BroadcastChannel") -> None:
        self._channels[channel.name].append(channel)

    def _leave(self, channel: "BroadcastChannel") -> None:
        members = self._channels.get(channel.name, [])
        if channel in members:
            members.remove(channel)

    def _post(self, sender: "BroadcastChannel", message: Any) -> int:
        receivers = [c for c in self._channels.get(sender.name, []) if c is not sender]
        for receiver in receivers:
            # each receiver gets its own copy, like a structured clone
            receiver._receive(copy.deepcopy(message))
        return len(receivers)


class BroadcastChannel:
    """One tab's endpoint on a named channel. Never hears its own posts."""

    def __init__(self, name: str, hub: BroadcastHub):
        self.name = name
        self._hub = hub
        self._listeners: list[Callable[[Any], None]] = []
        self._closed = False
        hub._join(self)

    def add_listener(self, listener: Callable[[Any], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Any], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def post_message(self, message: Any) -> int:
        """Send to every other channel with this name. Returns receiver count."""
        if self._closed:
            raise TransportUnavailableError(f"Broadcast channel '{self.name}' is closed")
        return self._hub._post(self, message)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._hub._leave(self)
            self._listeners.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def _receive(self, message: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as e:
                logger.error(f"Broadcast listener on '{self.name}' failed: {e}")


# =============================================================================
# Transports
# =============================================================================

class EventTransport(ABC):
    """
    Carries change events between tabs.

    Lifecycle: open(deliver) once, publish() any number of times, close().
    Inbound payloads are handed to `deliver` unparsed.
    """

    name: str = "transport"

    @abstractmethod
    def open(self, deliver: Deliver) -> None:
        ...

    @abstractmethod
    def publish(self, event: ChangeEvent) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @property
    def cross_tab(self) -> bool:
        return True


class BroadcastChannelTransport(EventTransport):
    """Publishes the wire dict on a dedicated broadcast channel."""

    name = "broadcast-channel"

    def __init__(self, hub: BroadcastHub, channel_name: str):
        self.hub = hub
        self.channel_name = channel_name
        self._channel: Optional[BroadcastChannel] = None
        self._listener: Optional[Callable[[Any], None]] = None

    def open(self, deliver: Deliver) -> None:
        if self._channel is not None:
            return
        self._channel = self.hub.channel(self.channel_name)
        self._listener = deliver
        self._channel.add_listener(deliver)
        logger.debug(f"Joined broadcast channel '{self.channel_name}'")

    def publish(self, event: ChangeEvent) -> None:
        if self._channel is None:
            raise TransportUnavailableError("Broadcast channel transport is not open")
        receivers = self._channel.post_message(event.to_wire())
        logger.debug(f"Posted {event} to {receivers} tab(s)")

    def close(self) -> None:
        if self._channel is not None:
            if self._listener is not None:
                self._channel.remove_listener(self._listener)
            self._channel.close()
            self._channel = None
            self._listener = None


class StorageEnvelopeTransport(EventTransport):
    """
    Publishes through a disposable storage key.

    The wire JSON is written to the envelope key and removed right away.
    Other tabs see the write as a storage change notification and ignore the
    removal. The key therefore never holds a record between broadcasts.
    """

    name = "storage-envelope"

    def __init__(self, storage: LocalStorage, envelope_key: str):
        self.storage = storage
        self.envelope_key = envelope_key
        self._remove_listener: Optional[Callable[[], None]] = None

    def open(self, deliver: Deliver) -> None:
        if self._remove_listener is not None:
            return

        def on_storage(event: StorageEvent) -> None:
            if event.key == self.envelope_key and event.new_value:
                deliver(event.new_value)

        self._remove_listener = self.storage.add_listener(on_storage)
        logger.debug(f"Watching storage key '{self.envelope_key}'")

    def publish(self, event: ChangeEvent) -> None:
        if self._remove_listener is None:
            raise TransportUnavailableError("Storage envelope transport is not open")
        self.storage.set_item(self.envelope_key, json.dumps(event.to_wire()))
        self.storage.remove_item(self.envelope_key)

    def close(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None


class NullTransport(EventTransport):
    """Local-only mode: publishes go nowhere, nothing ever arrives."""

    name = "none"

    def open(self, deliver: Deliver) -> None:
        logger.info("Cross-tab sync unavailable; changes stay within this tab")

    def publish(self, event: ChangeEvent) -> None:
        pass

    def close(self) -> None:
        pass

    @property
    def cross_tab(self) -> bool:
        return False


def select_transport(
    hub: Optional[BroadcastHub],
    storage: Optional[LocalStorage],
    settings: Optional[SyncSettings] = None,
) -> EventTransport:
    """
    Pick the transport for a tab based on what its environment supports.

    Preference: broadcast channel, then storage envelope, then local-only.
    """
    settings = settings or SyncSettings()
    if hub is not None:
        return BroadcastChannelTransport(hub, settings.channel_name)
    if storage is not None:
        logger.info("Broadcast channels unsupported; using storage envelope transport")
        return StorageEnvelopeTransport(storage, settings.envelope_key)
    logger.warning("No cross-tab transport available")
    return NullTransport()
