"""
Change broadcaster for one tab.

`DataSync` is the per-tab context object that ties the pieces together:
mutators call `broadcast_change()` after every successful save, and every
interested surface (in this tab or another) hears about it through
`subscribe_to_changes()`.

Design decisions:
- Explicitly constructed and started; one instance per tab, no globals
- Local delivery is synchronous and always happens, whatever the transport
- Cross-tab delivery is best effort: transport failures are logged, never
  raised
- Inbound payloads are validated; malformed ones are dropped and logged
- No deduplication or merging of overlapping event types

Failure taxonomy:
- transport unavailable -> local-only delivery, logged
- malformed inbound event -> dropped, logged, no subscriber invoked
- listener exception -> isolated by the registry, logged
"""

import logging
from typing import Any, Callable, Optional, Union

from data_sync.events import (
    ChangeAction,
    ChangeEvent,
    MalformedEventError,
    SyncEventType,
    now_ms,
)
from data_sync.registry import ChangeListener, SubscriptionRegistry, Unsubscribe
from data_sync.transports import EventTransport, NullTransport

logger = logging.getLogger("data_sync")


class DataSync:
    """
    Broadcasts collection changes within a tab and across tabs.

    Example:
        sync = DataSync(transport=select_transport(hub, storage))
        sync.start()

        unsubscribe = sync.subscribe_to_changes(lambda e: print(e))
        sync.broadcast_change("orders", "create")   # prints locally, and
                                                     # reaches other tabs
        sync.close()
    """

    def __init__(
        self,
        transport: Optional[EventTransport] = None,
        registry: Optional[SubscriptionRegistry] = None,
        clock: Optional[Callable[[], int]] = None,
        name: str = "tab",
    ):
        """
        Initialize the broadcaster.

        Args:
            transport: Cross-tab transport (defaults to local-only)
            registry: Subscription registry for this tab (defaults to a new one)
            clock: Returns the current time in ms (defaults to wall clock)
            name: Label used in log messages
        """
        self.transport = transport or NullTransport()
        self.registry = registry or SubscriptionRegistry()
        self.clock = clock or now_ms
        self.name = name
        self._started = False
        self._closed = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> "DataSync":
        """Open the transport so events from other tabs start arriving."""
        if self._started:
            logger.warning(f"DataSync for {self.name} already started")
            return self
        try:
            self.transport.open(self._receive)
        except Exception as e:
            logger.warning(
                f"{self.name}: transport '{self.transport.name}' failed to open ({e}); "
                f"falling back to local-only delivery"
            )
            self.transport = NullTransport()
            self.transport.open(self._receive)
        self._started = True
        self._closed = False
        logger.info(f"DataSync started for {self.name} via {self.transport.name}")
        return self

    def close(self) -> None:
        """Close the transport and drop every subscription."""
        if self._closed:
            return
        try:
            self.transport.close()
        except Exception as e:
            logger.warning(f"{self.name}: error closing transport: {e}")
        self.registry.clear()
        self._closed = True
        self._started = False
        logger.info(f"DataSync closed for {self.name}")

    def __enter__(self) -> "DataSync":
        if not self._started:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_running(self) -> bool:
        return self._started and not self._closed

    # =========================================================================
    # Broadcasting
    # =========================================================================

    def broadcast_change(
        self,
        type: Union[SyncEventType, str],
        action: Union[ChangeAction, str],
    ) -> None:
        """
        Announce that a collection was written.

        Builds a change event stamped with the current time, publishes it to
        the other tabs and delivers it to every local subscriber.

        Raises:
            ValueError: if type or action is not a known value
        """
        event = ChangeEvent(
            type=SyncEventType(type),
            action=ChangeAction(action),
            timestamp=self.clock(),
        )

        try:
            self.transport.publish(event)
        except Exception as e:
            logger.warning(f"{self.name}: cross-tab publish of {event} failed: {e}")

        delivered = self.registry.dispatch(event)
        logger.info(f"{self.name} broadcast {event} to {delivered} local listener(s)")

    def subscribe_to_changes(self, callback: ChangeListener) -> Unsubscribe:
        """Subscribe to every change event seen by this tab."""
        return self.registry.subscribe(callback)

    # =========================================================================
    # Inbound
    # =========================================================================

    def _receive(self, payload: Any) -> None:
        if self._closed:
            return
        try:
            event = ChangeEvent.from_wire(payload)
        except MalformedEventError as e:
            logger.warning(f"{self.name}: dropped malformed sync event: {e}")
            return
        delivered = self.registry.dispatch(event)
        logger.debug(f"{self.name} received {event} -> {delivered} listener(s)")
