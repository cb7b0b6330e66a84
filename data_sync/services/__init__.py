"""
Mutators used by the console surfaces.

Each service reads a collection, changes it in memory, saves the whole
collection and then broadcasts the change:
- Inventory: stock adjustments and new catalog products
- Ordering: checkout and order status changes
- Promotions: promo code management and validation
- Reviews: customer reviews and moderation
"""

from data_sync.services.inventory import InventoryService
from data_sync.services.ordering import (
    OrderingService,
    InsufficientStockError,
    EmptyCartError,
    InvalidStatusTransitionError,
    ALLOWED_STATUS_TRANSITIONS,
)
from data_sync.services.promotions import (
    PromotionsService,
    PromotionError,
    InvalidPromotionError,
    PromotionLimitReachedError,
)
from data_sync.services.reviews import ReviewsService
from data_sync.services.dashboard import DashboardOverview, build_overview

__all__ = [
    "InventoryService",
    "OrderingService",
    "InsufficientStockError",
    "EmptyCartError",
    "InvalidStatusTransitionError",
    "ALLOWED_STATUS_TRANSITIONS",
    "PromotionsService",
    "PromotionError",
    "InvalidPromotionError",
    "PromotionLimitReachedError",
    "ReviewsService",
    "DashboardOverview",
    "build_overview",
]
