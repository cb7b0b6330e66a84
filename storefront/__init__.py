"""
Storefront data layer for the Laroza lighting shop.

This package contains the state shared by every tab of the console:
- Domain models (Product, Order, Promotion, Review, ...)
- Origin storage with cross-tab change notifications
- Collection access layer (whole-collection get/save)
- Plaintext login and session handling
"""

from storefront.models import (
    Product,
    ProductCategory,
    Order,
    OrderItem,
    OrderStatus,
    Promotion,
    Review,
    UserRole,
    UserSession,
    CustomerAccount,
    CartItem,
)
from storefront.storage import StorageArea, LocalStorage, StorageEvent
from storefront.data_store import DataStore, CollectionError

__all__ = [
    "Product",
    "ProductCategory",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Promotion",
    "Review",
    "UserRole",
    "UserSession",
    "CustomerAccount",
    "CartItem",
    "StorageArea",
    "LocalStorage",
    "StorageEvent",
    "DataStore",
    "CollectionError",
]
