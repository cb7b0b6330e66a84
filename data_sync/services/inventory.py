"""
Inventory service: catalog additions and stock adjustments.

Used by the admin console's product catalog and inventory panels. Every
mutation saves the whole products collection and then broadcasts, so shop
tabs re-read the catalog.
"""

import logging
from typing import Callable, Optional

from data_sync.events import ChangeAction, SyncEventType
from data_sync.services.identity import unique_id
from data_sync.sync import DataSync
from storefront.data_store import DataStore
from storefront.models import PLACEHOLDER_IMAGE, Product, ProductCategory

logger = logging.getLogger("inventory_service")


class InventoryService:
    """
    Stock and catalog management for the admin console.

    Example:
        service = InventoryService(sync, data_store)
        service.adjust_stock("p1", -2)   # broadcasts inventory/update
    """

    def __init__(
        self,
        sync: DataSync,
        data_store: DataStore,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.sync = sync
        self.data_store = data_store
        self.clock = clock or sync.clock

    def adjust_stock(self, product_id: str, change: int) -> Optional[Product]:
        """
        Add `change` units (negative to remove), never going below zero.

        Returns the updated product, or None if it does not exist.
        """
        products = self.data_store.get_products()
        product = next((p for p in products if p.id == product_id), None)
        if product is None:
            logger.error(f"Product not found: {product_id}")
            return None

        new_stock = max(0, product.stock + change)
        updated = product.model_copy(update={"stock": new_stock})
        self.data_store.save_products(
            [updated if p.id == product_id else p for p in products]
        )
        logger.info(f"Stock for {product_id}: {product.stock} -> {new_stock}")

        self.sync.broadcast_change(SyncEventType.INVENTORY, ChangeAction.UPDATE)
        return updated

    def add_product(
        self,
        name: str,
        category: ProductCategory,
        price: float,
        stock: int,
        low_stock_threshold: int,
        description: str,
        image: Optional[str] = None,
    ) -> Product:
        """Append a new product to the catalog and broadcast products/create."""
        products = self.data_store.get_products()
        product = Product(
            id=unique_id("p", (p.id for p in products), self.clock),
            name=name,
            category=category,
            price=price,
            stock=stock,
            low_stock_threshold=low_stock_threshold,
            description=description,
            image=image or PLACEHOLDER_IMAGE,
        )
        self.data_store.save_products(products + [product])
        logger.info(f"Added product {product.id}: {product.name}")

        self.sync.broadcast_change(SyncEventType.PRODUCTS, ChangeAction.CREATE)
        return product

    def low_stock_products(self) -> list[Product]:
        return [p for p in self.data_store.get_products() if p.is_low_stock]
