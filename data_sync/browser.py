"""
Origins and tabs.

An `Origin` stands for one browser origin: a shared storage area and, when
the environment supports it, a broadcast channel hub. Each `Tab` opened on
it is an independent execution context with its own storage handle, data
store, subscription registry and services. Several tabs in one process
simulate several people using the console at once.
"""

import datetime
import logging
from typing import Callable, Optional

from data_sync.config import SyncSettings
from data_sync.registry import SubscriptionRegistry
from data_sync.services import (
    InventoryService,
    OrderingService,
    PromotionsService,
    ReviewsService,
)
from data_sync.sync import DataSync
from data_sync.transports import BroadcastHub, select_transport
from storefront.auth import SessionStore
from storefront.data_store import DataStore
from storefront.storage import StorageArea

logger = logging.getLogger("browser")


class Origin:
    """
    Shared environment for a set of tabs.

    Args:
        supports_broadcast_channel: whether tabs get a broadcast channel hub
        supports_storage_events: whether tabs may fall back to the storage
            envelope transport
        settings: channel and key names shared by every tab
    """

    def __init__(
        self,
        supports_broadcast_channel: bool = True,
        supports_storage_events: bool = True,
        settings: Optional[SyncSettings] = None,
        clock: Optional[Callable[[], int]] = None,
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        self.settings = settings or SyncSettings()
        self.storage_area = StorageArea()
        self.broadcast_hub = BroadcastHub() if supports_broadcast_channel else None
        self.supports_storage_events = supports_storage_events
        self.clock = clock
        self.today = today
        self.tabs: list["Tab"] = []

    def open_tab(self, name: Optional[str] = None) -> "Tab":
        """Open and start a new tab, seeding storage on first use."""
        tab = Tab(self, name or f"tab-{len(self.tabs) + 1}")
        tab.open()
        self.tabs.append(tab)
        return tab

    def close(self) -> None:
        for tab in list(self.tabs):
            tab.close()


class Tab:
    """
    One execution context on an origin.

    Example:
        origin = Origin()
        admin, shop = origin.open_tab("admin"), origin.open_tab("shop")
        admin.inventory.adjust_stock("p1", 5)   # shop's listeners hear it
    """

    def __init__(self, origin: Origin, name: str):
        self.origin = origin
        self.name = name
        self.storage = origin.storage_area.open(name)
        self.data_store = DataStore(self.storage, data_dir=origin.settings.data_dir)
        self.session = SessionStore(self.storage)

        transport = select_transport(
            origin.broadcast_hub,
            self.storage if origin.supports_storage_events else None,
            origin.settings,
        )
        self.sync = DataSync(
            transport=transport,
            registry=SubscriptionRegistry(),
            clock=origin.clock,
            name=name,
        )

        self.inventory = InventoryService(self.sync, self.data_store)
        self.promotions = PromotionsService(self.sync, self.data_store, today=origin.today)
        self.ordering = OrderingService(
            self.sync, self.data_store, promotions=self.promotions, today=origin.today
        )
        self.reviews = ReviewsService(self.sync, self.data_store, today=origin.today)
        self._open = False

    def open(self) -> "Tab":
        if not self._open:
            self.data_store.initialize_data()
            self.sync.start()
            self._open = True
        return self

    def close(self) -> None:
        """Tear down the tab: stop syncing and detach from storage."""
        if not self._open:
            return
        self.sync.close()
        self.storage.detach()
        self._open = False
        if self in self.origin.tabs:
            self.origin.tabs.remove(self)
        logger.info(f"Closed {self.name}")

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "Tab":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Tab({self.name!r}, transport={self.sync.transport.name})"
