"""
Collection access layer for the storefront.

Each of the four collections (products, orders, promotions, reviews) lives
under its own key in the origin storage as one JSON array. This module
provides typed get/save operations over those keys.

Design decisions:
- Save always overwrites the whole collection (no partial or merge updates)
- Get re-reads and re-parses storage on every call; nothing is cached
- A missing key falls back to the JSON fixtures shipped in data/
- No versioning: two tabs that read, modify and save the same collection
  end up with whichever save happened last
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from storefront.models import Order, Product, Promotion, Review
from storefront.storage import LocalStorage

logger = logging.getLogger("data_store")


PRODUCTS_KEY = "products"
ORDERS_KEY = "orders"
PROMOTIONS_KEY = "promotions"
REVIEWS_KEY = "reviews"

COLLECTION_KEYS = (PRODUCTS_KEY, ORDERS_KEY, PROMOTIONS_KEY, REVIEWS_KEY)

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

_ADAPTERS = {
    PRODUCTS_KEY: TypeAdapter(list[Product]),
    ORDERS_KEY: TypeAdapter(list[Order]),
    PROMOTIONS_KEY: TypeAdapter(list[Promotion]),
    REVIEWS_KEY: TypeAdapter(list[Review]),
}


class CollectionError(ValueError):
    """A stored collection could not be parsed."""


class DataStore:
    """
    Typed access to the persisted collections of one tab.

    Example:
        store = DataStore(area.open("admin"))
        store.initialize_data()

        products = store.get_products()
        products[0].stock -= 1
        store.save_products(products)   # replaces the whole array
    """

    def __init__(self, storage: LocalStorage, data_dir: Optional[Path] = None):
        """
        Initialize the data store.

        Args:
            storage: This tab's handle onto the origin storage
            data_dir: Directory with the JSON fixtures used for seeding.
                     Defaults to ./data relative to the project root.
        """
        self.storage = storage
        self.data_dir = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR

    # =========================================================================
    # Fixtures and seeding
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a JSON fixture file."""
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        with open(filepath, "r") as f:
            return json.load(f)

    def initialize_data(self) -> list[str]:
        """
        Seed every collection key that is not in storage yet.

        Existing collections are left untouched, so opening a new tab never
        resets data written by another one. Returns the keys that were seeded.
        """
        seeded = []
        for key in COLLECTION_KEYS:
            if self.storage.get_item(key) is None:
                self.storage.set_item(key, json.dumps(self._load_json(f"{key}.json")))
                seeded.append(key)
        if seeded:
            logger.info(f"Seeded collections from fixtures: {', '.join(seeded)}")
        return seeded

    # =========================================================================
    # Generic read/write
    # =========================================================================

    def _read(self, key: str) -> list:
        raw = self.storage.get_item(key)
        try:
            if raw is None:
                return _ADAPTERS[key].validate_python(self._load_json(f"{key}.json"))
            return _ADAPTERS[key].validate_json(raw)
        except ValidationError as e:
            logger.error(f"Collection '{key}' is corrupt: {e.error_count()} validation errors")
            raise CollectionError(f"Collection '{key}' could not be parsed") from e

    def _write(self, key: str, items: list) -> None:
        records = [item.to_record() for item in items]
        self.storage.set_item(key, json.dumps(records))
        logger.debug(f"Saved {len(records)} records to '{key}'")

    # =========================================================================
    # Product Operations
    # =========================================================================

    def get_products(self) -> list[Product]:
        return self._read(PRODUCTS_KEY)

    def save_products(self, products: list[Product]) -> None:
        self._write(PRODUCTS_KEY, products)

    def get_product(self, product_id: str) -> Optional[Product]:
        """Get a product by ID."""
        return next((p for p in self.get_products() if p.id == product_id), None)

    # =========================================================================
    # Order Operations
    # =========================================================================

    def get_orders(self) -> list[Order]:
        return self._read(ORDERS_KEY)

    def save_orders(self, orders: list[Order]) -> None:
        self._write(ORDERS_KEY, orders)

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get an order by ID."""
        return next((o for o in self.get_orders() if o.id == order_id), None)

    def get_orders_by_customer(self, customer_name: str) -> list[Order]:
        """Get all orders placed by a customer, newest first as stored."""
        return [o for o in self.get_orders() if o.customer_name == customer_name]

    # =========================================================================
    # Promotion Operations
    # =========================================================================

    def get_promotions(self) -> list[Promotion]:
        return self._read(PROMOTIONS_KEY)

    def save_promotions(self, promotions: list[Promotion]) -> None:
        self._write(PROMOTIONS_KEY, promotions)

    # =========================================================================
    # Review Operations
    # =========================================================================

    def get_reviews(self) -> list[Review]:
        return self._read(REVIEWS_KEY)

    def save_reviews(self, reviews: list[Review]) -> None:
        self._write(REVIEWS_KEY, reviews)

    def get_reviews_for_product(self, product_id: str) -> list[Review]:
        return [r for r in self.get_reviews() if r.product_id == product_id]
