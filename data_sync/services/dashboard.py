"""
Read-only summary figures for the admin dashboard.
"""

import datetime
from typing import Optional

from pydantic import BaseModel

from storefront.data_store import DataStore
from storefront.models import OrderStatus, Product


class DashboardOverview(BaseModel):
    total_products: int
    total_stock: int
    low_stock_products: list[Product]
    pending_orders: int
    total_revenue: float
    total_reviews: int
    active_promotions: int


def build_overview(
    data_store: DataStore,
    today: Optional[datetime.date] = None,
) -> DashboardOverview:
    """
    Compute the dashboard figures from a fresh read of every collection.

    Revenue only counts completed orders. A promotion is active when it can
    be used on `today` (defaults to the current date).
    """
    products = data_store.get_products()
    orders = data_store.get_orders()
    return DashboardOverview(
        total_products=len(products),
        total_stock=sum(p.stock for p in products),
        low_stock_products=[p for p in products if p.is_low_stock],
        pending_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING),
        total_revenue=sum(o.total for o in orders if o.status == OrderStatus.COMPLETED),
        total_reviews=len(data_store.get_reviews()),
        active_promotions=sum(1 for p in data_store.get_promotions() if p.is_currently_valid(today)),
    )
