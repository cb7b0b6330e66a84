"""
Ordering service: order placement and order status changes.

Placing an order touches three collections in sequence, each with its own
whole-collection save and broadcast:

    1. products   - stock decremented   -> inventory/update, products/update
    2. orders     - new order prepended -> orders/create
    3. promotions - promo use recorded  -> promotions/update (only with a code)

The writes are not atomic. If the process dies between steps 1 and 2, stock
stays decremented without a matching order; nothing rolls it back. Another
tab saving products between the stock check and step 1 is overwritten
(last writer wins).
"""

import datetime
import logging
from typing import Callable, Optional

from data_sync.events import ChangeAction, SyncEventType
from data_sync.services.identity import unique_id
from data_sync.services.promotions import PromotionsService
from data_sync.sync import DataSync
from storefront.data_store import DataStore
from storefront.models import CartItem, Order, OrderItem, OrderStatus

logger = logging.getLogger("ordering_service")


class InsufficientStockError(ValueError):
    """A cart line asks for more units than are currently in stock."""

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Please update your cart."
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class EmptyCartError(ValueError):
    """Orders need at least one line."""


class InvalidStatusTransitionError(ValueError):
    """The order cannot move from its current status to the requested one."""

    def __init__(self, order_id: str, current: OrderStatus, requested: OrderStatus):
        super().__init__(
            f"Cannot change order {order_id} from {current.value} to {requested.value}"
        )
        self.order_id = order_id
        self.current = current
        self.requested = requested


# Completed and cancelled are final
ALLOWED_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class OrderingService:
    """
    Customer checkout and admin order handling.

    Example:
        service = OrderingService(sync, data_store)
        order = service.place_order(
            "customer",
            [CartItem(product_id="p1", quantity=2)],
            promo_code="WELCOME10",
        )
        service.update_order_status(order.id, OrderStatus.PROCESSING)
    """

    def __init__(
        self,
        sync: DataSync,
        data_store: DataStore,
        promotions: Optional[PromotionsService] = None,
        clock: Optional[Callable[[], int]] = None,
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        self.sync = sync
        self.data_store = data_store
        self.today = today or datetime.date.today
        self.promotions = promotions or PromotionsService(sync, data_store, today=self.today)
        self.clock = clock or sync.clock

    def place_order(
        self,
        customer_name: str,
        cart: list[CartItem],
        promo_code: Optional[str] = None,
    ) -> Order:
        """
        Check stock, save the order and update stock and promo usage.

        Stock is checked against a fresh read of the products collection,
        not against whatever the customer's tab last displayed.

        Raises:
            EmptyCartError: the cart has no lines
            InsufficientStockError: a line exceeds current stock (nothing is written)
            PromotionError: the promo code cannot be used (nothing is written)
        """
        if not cart:
            raise EmptyCartError("Cannot place an order with an empty cart")

        promotion = self.promotions.validate_code(promo_code) if promo_code else None

        products = self.data_store.get_products()
        by_id = {p.id: p for p in products}
        requested: dict[str, int] = {}
        for line in cart:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

        for product_id, quantity in requested.items():
            product = by_id.get(product_id)
            if product is None or product.stock < quantity:
                available = product.stock if product else 0
                name = product.name if product else product_id
                logger.warning(
                    f"Rejected order for {customer_name}: {name} "
                    f"requested {quantity}, available {available}"
                )
                raise InsufficientStockError(product_id, name, quantity, available)

        items = [
            OrderItem(
                product_id=line.product_id,
                product_name=by_id[line.product_id].name,
                quantity=line.quantity,
                price=by_id[line.product_id].price,
            )
            for line in cart
        ]
        subtotal = sum(item.line_total for item in items)
        discount = promotion.discount if promotion else None
        discount_amount = subtotal * discount / 100 if discount else 0
        total = subtotal - discount_amount

        # Step 1: stock
        self.data_store.save_products([
            p.model_copy(update={"stock": p.stock - requested[p.id]}) if p.id in requested else p
            for p in products
        ])
        self.sync.broadcast_change(SyncEventType.INVENTORY, ChangeAction.UPDATE)
        self.sync.broadcast_change(SyncEventType.PRODUCTS, ChangeAction.UPDATE)

        # Step 2: order
        orders = self.data_store.get_orders()
        order = Order(
            id=unique_id("o", (o.id for o in orders), self.clock),
            customer_name=customer_name,
            items=items,
            total=total,
            status=OrderStatus.PENDING,
            date=self.today(),
            promo_code=promotion.code if promotion else None,
            discount=discount,
        )
        self.data_store.save_orders([order] + orders)
        self.sync.broadcast_change(SyncEventType.ORDERS, ChangeAction.CREATE)
        logger.info(
            f"Order {order.id} placed by {customer_name}: "
            f"{order.get_item_count()} item(s), total {order.total:.2f}"
        )

        # Step 3: promo usage
        if promotion is not None:
            self.promotions.record_use(promotion.code)

        return order

    def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        """
        Move an order along its lifecycle.

        Returns the updated order, or None if it does not exist.

        Raises:
            InvalidStatusTransitionError: the move is not in
                ALLOWED_STATUS_TRANSITIONS (nothing is written)
        """
        orders = self.data_store.get_orders()
        order = next((o for o in orders if o.id == order_id), None)
        if order is None:
            logger.error(f"Order not found: {order_id}")
            return None

        previous_status = OrderStatus(order.status)
        status = OrderStatus(status)
        if status not in ALLOWED_STATUS_TRANSITIONS[previous_status]:
            logger.warning(
                f"Rejected status change for {order_id}: "
                f"{previous_status.value} -> {status.value}"
            )
            raise InvalidStatusTransitionError(order_id, previous_status, status)

        updated = order.model_copy(update={"status": status.value})
        self.data_store.save_orders([updated if o.id == order_id else o for o in orders])
        logger.info(f"Order {order_id}: {previous_status.value} -> {updated.status}")

        self.sync.broadcast_change(SyncEventType.ORDERS, ChangeAction.UPDATE)
        return updated
