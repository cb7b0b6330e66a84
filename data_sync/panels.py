"""
Console surfaces as view-models.

A panel holds a transient copy of the collections it displays and keeps it
current with an auto-refresh binding while it is mounted. Panels never
merge: a refresh simply re-reads the collections from storage.
"""

import datetime
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from data_sync.auto_refresh import AutoRefresh
from data_sync.events import SyncEventType
from data_sync.services.dashboard import DashboardOverview, build_overview
from data_sync.sync import DataSync
from storefront.data_store import DataStore
from storefront.models import Order, Product, ProductCategory, Review

logger = logging.getLogger("panels")


class Panel(ABC):
    """
    Base for a mounted surface.

    Subclasses set `interests` and implement `load()`.
    """

    interests: tuple[SyncEventType, ...] = ()

    def __init__(self, sync: DataSync, data_store: DataStore):
        self.sync = sync
        self.data_store = data_store
        self.refresh_count = 0
        self._binding: Optional[AutoRefresh] = None

    @abstractmethod
    def load(self) -> None:
        """Re-read the collections this panel displays."""

    def refresh(self) -> None:
        self.refresh_count += 1
        self.load()

    def mount(self) -> "Panel":
        """Load once and start listening for changes."""
        if self._binding is None:
            self.load()
            self._binding = AutoRefresh(self.sync, self.interests, self.refresh).bind()
            logger.debug(f"{type(self).__name__} mounted on {self.sync.name}")
        return self

    def unmount(self) -> None:
        if self._binding is not None:
            self._binding.close()
            self._binding = None
            logger.debug(f"{type(self).__name__} unmounted from {self.sync.name}")

    @property
    def is_mounted(self) -> bool:
        return self._binding is not None

    def __enter__(self):
        return self.mount()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()


class ShopPanel(Panel):
    """Customer product listing with category and name filters."""

    interests = (SyncEventType.PRODUCTS, SyncEventType.INVENTORY)

    def __init__(self, sync: DataSync, data_store: DataStore):
        super().__init__(sync, data_store)
        self.products: list[Product] = []

    def load(self) -> None:
        self.products = self.data_store.get_products()

    def product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def visible_products(
        self,
        category: Optional[ProductCategory] = None,
        search: str = "",
    ) -> list[Product]:
        needle = search.strip().lower()
        return [
            p for p in self.products
            if (category is None or p.category == category)
            and needle in p.name.lower()
        ]


class OrderHistoryPanel(Panel):
    """A customer's orders, with which ones were already reviewed."""

    interests = (SyncEventType.ORDERS, SyncEventType.REVIEWS)

    def __init__(self, sync: DataSync, data_store: DataStore, customer_name: str):
        super().__init__(sync, data_store)
        self.customer_name = customer_name
        self.orders: list[Order] = []
        self.reviewed_order_ids: set[str] = set()

    def load(self) -> None:
        self.orders = self.data_store.get_orders_by_customer(self.customer_name)
        self.reviewed_order_ids = {r.order_id for r in self.data_store.get_reviews()}

    def can_review(self, order_id: str) -> bool:
        return order_id not in self.reviewed_order_ids


class AdminDashboardPanel(Panel):
    """Admin console: every collection, refreshed on any change."""

    interests = tuple(SyncEventType)

    def __init__(
        self,
        sync: DataSync,
        data_store: DataStore,
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        super().__init__(sync, data_store)
        self.today = today or datetime.date.today
        self.products: list[Product] = []
        self.orders: list[Order] = []
        self.reviews: list[Review] = []
        self._overview: Optional[DashboardOverview] = None

    def load(self) -> None:
        self.products = self.data_store.get_products()
        self.orders = self.data_store.get_orders()
        self.reviews = self.data_store.get_reviews()
        self._overview = build_overview(self.data_store, self.today())

    def overview(self) -> DashboardOverview:
        if self._overview is None:
            self.load()
        return self._overview
