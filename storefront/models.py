"""
Domain models for the Laroza lighting storefront.

These models describe the four persisted collections (products, orders,
promotions, reviews) plus the session identity used by the console.

Design decisions:
- Using Pydantic for validation and serialization
- Attributes are snake_case in Python, camelCase on the wire (aliases),
  matching the layout stored under each collection key
- Optional fields are dropped from the stored JSON when unset
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


PLACEHOLDER_IMAGE = "product-placeholder"


# =============================================================================
# Enums
# =============================================================================

class ProductCategory(str, Enum):
    """The fixed set of catalog categories."""
    CEILING = "Ceiling"
    WALL = "Wall"
    DECORATIVE = "Decorative"
    LED_BULBS = "LED Bulbs"
    FIXTURES = "Fixtures"


class OrderStatus(str, Enum):
    """
    Order lifecycle states.

    New orders start as pending; the admin console moves them along.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class StoreModel(BaseModel):
    """Base for every persisted entity: camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_record(self) -> dict:
        """Serialize to the JSON-ready dict stored in a collection array."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Catalog
# =============================================================================

class Product(StoreModel):
    """
    A catalog item with its stock level.

    `image` is a URL, a data URI or the placeholder sentinel.
    """
    id: str = Field(..., description="Unique product identifier")
    name: str
    category: ProductCategory
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    low_stock_threshold: int = Field(..., ge=0)
    description: str = ""
    image: str = PLACEHOLDER_IMAGE

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock == 0


# =============================================================================
# Orders
# =============================================================================

class OrderItem(StoreModel):
    """
    A line of an order.

    Name and price are snapshots taken when the order was placed, so later
    catalog edits do not change historical orders.
    """
    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Order(StoreModel):
    """
    A customer purchase.

    `total` is computed once when the order is created (subtotal minus the
    promotion discount) and is never recomputed afterwards.
    """
    id: str
    customer_name: str
    items: list[OrderItem] = Field(default_factory=list)
    total: float = Field(..., ge=0)
    status: OrderStatus = OrderStatus.PENDING
    date: datetime.date
    promo_code: Optional[str] = None
    discount: Optional[float] = Field(default=None, ge=0, le=100)

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    def get_item_count(self) -> int:
        return sum(item.quantity for item in self.items)


# =============================================================================
# Promotions
# =============================================================================

class Promotion(StoreModel):
    """
    A percentage-off promo code.

    Codes are stored uppercase and matched case-insensitively. A max_uses of
    None or 0 means the code has no usage limit.
    """
    id: str
    code: str
    discount: float = Field(..., ge=0, le=100)
    valid_from: datetime.date
    valid_to: datetime.date
    active: bool = True
    max_uses: Optional[int] = Field(default=None, ge=0)
    current_uses: Optional[int] = Field(default=0, ge=0)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    def matches(self, code: str) -> bool:
        return self.code == code.strip().upper()

    @property
    def has_reached_limit(self) -> bool:
        if not self.max_uses:
            return False
        return (self.current_uses or 0) >= self.max_uses

    def is_in_window(self, today: datetime.date) -> bool:
        return self.active and self.valid_from <= today <= self.valid_to

    def is_currently_valid(self, today: Optional[datetime.date] = None) -> bool:
        """Active, inside the date window and under its usage limit."""
        today = today or datetime.date.today()
        return self.is_in_window(today) and not self.has_reached_limit


# =============================================================================
# Reviews
# =============================================================================

class Review(StoreModel):
    """
    A customer rating of one product from one of their orders.

    The console shows the review action once per order; nothing in the data
    prevents a second review.
    """
    id: str
    product_id: str
    order_id: str
    customer_name: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    date: datetime.date


# =============================================================================
# Session identity
# =============================================================================

class UserSession(StoreModel):
    """The logged-in identity. Not part of the synchronized collections."""
    username: str
    role: UserRole


class CustomerAccount(StoreModel):
    """A self-registered customer login. Passwords are kept in plaintext."""
    username: str
    password: str


# =============================================================================
# Cart
# =============================================================================

class CartItem(StoreModel):
    """A product and quantity waiting in a customer's cart (never persisted)."""
    product_id: str
    quantity: int = Field(..., ge=1)
