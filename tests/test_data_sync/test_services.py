"""
Tests for the mutating services.

Every test runs against a fresh origin seeded from the fixture data, so
stock levels and promo usage counters start from known values.
"""

import datetime

import pytest

from data_sync.browser import Origin
from data_sync.services import (
    EmptyCartError,
    InsufficientStockError,
    InvalidPromotionError,
    InvalidStatusTransitionError,
    PromotionLimitReachedError,
    build_overview,
)
from data_sync.services.identity import unique_id
from storefront.models import CartItem, OrderStatus, ProductCategory, Promotion


def record(tab):
    received = []
    tab.sync.subscribe_to_changes(received.append)
    return received


def kinds(events):
    return [(e.type.value, e.action.value) for e in events]


@pytest.fixture
def frozen_tab(today):
    """Tab whose clock never advances, as when two writes land in the same ms."""
    origin = Origin(clock=lambda: 1769040000000, today=lambda: today)
    yield origin.open_tab("frozen")
    origin.close()


class TestInventoryService:
    def test_adjust_stock(self, admin_tab, ceiling_light_id):
        events = record(admin_tab)

        product = admin_tab.inventory.adjust_stock(ceiling_light_id, -2)

        assert product.stock == 43
        assert admin_tab.data_store.get_product(ceiling_light_id).stock == 43
        assert kinds(events) == [("inventory", "update")]

    def test_stock_never_negative(self, admin_tab, pendant_id):
        product = admin_tab.inventory.adjust_stock(pendant_id, -100)
        assert product.stock == 0
        assert product.is_out_of_stock

    def test_unknown_product(self, admin_tab):
        events = record(admin_tab)

        assert admin_tab.inventory.adjust_stock("missing", 5) is None
        assert events == []

    def test_add_product(self, admin_tab):
        events = record(admin_tab)

        product = admin_tab.inventory.add_product(
            name="Solar Garden Light",
            category=ProductCategory.FIXTURES,
            price=1499,
            stock=20,
            low_stock_threshold=5,
            description="Weatherproof solar light",
        )

        assert product.id.startswith("p")
        assert product.image == "product-placeholder"
        assert admin_tab.data_store.get_products()[-1].id == product.id
        assert kinds(events) == [("products", "create")]

    def test_low_stock_products(self, admin_tab):
        ids = {p.id for p in admin_tab.inventory.low_stock_products()}
        assert ids == {"p5", "p9", "p12"}


class TestPlaceOrder:
    def test_place_order_without_code(self, shop_tab, ceiling_light_id, today):
        order = shop_tab.ordering.place_order(
            "customer", [CartItem(product_id=ceiling_light_id, quantity=2)]
        )

        assert order.status == OrderStatus.PENDING
        assert order.total == 4998
        assert order.date == today
        assert order.promo_code is None
        assert order.items[0].product_name == "Modern LED Ceiling Light"
        assert shop_tab.data_store.get_orders()[0].id == order.id
        assert shop_tab.data_store.get_product(ceiling_light_id).stock == 43

    def test_place_order_with_code(self, shop_tab, ceiling_light_id):
        events = record(shop_tab)

        order = shop_tab.ordering.place_order(
            "customer",
            [CartItem(product_id=ceiling_light_id, quantity=2)],
            promo_code="welcome10",
        )

        assert order.promo_code == "WELCOME10"
        assert order.discount == 10
        assert order.total == pytest.approx(4498.2)
        assert shop_tab.promotions.find_by_code("WELCOME10").current_uses == 13
        assert kinds(events) == [
            ("inventory", "update"),
            ("products", "update"),
            ("orders", "create"),
            ("promotions", "update"),
        ]

    def test_repeated_lines_are_summed(self, shop_tab, chandelier_id):
        with pytest.raises(InsufficientStockError):
            shop_tab.ordering.place_order("customer", [
                CartItem(product_id=chandelier_id, quantity=5),
                CartItem(product_id=chandelier_id, quantity=4),
            ])

    def test_insufficient_stock_writes_nothing(self, shop_tab, pendant_id):
        events = record(shop_tab)
        orders_before = shop_tab.data_store.get_orders()

        with pytest.raises(InsufficientStockError) as exc_info:
            shop_tab.ordering.place_order("customer", [CartItem(product_id=pendant_id, quantity=5)])

        assert str(exc_info.value) == (
            "Insufficient stock for Pendant Decorative Light. Please update your cart."
        )
        assert exc_info.value.available == 4
        assert shop_tab.data_store.get_orders() == orders_before
        assert shop_tab.data_store.get_product(pendant_id).stock == 4
        assert events == []

    def test_stock_check_rereads_storage(self, admin_tab, shop_tab, chandelier_id):
        # the shop tab last saw 8 in stock
        assert shop_tab.data_store.get_product(chandelier_id).stock == 8
        admin_tab.inventory.adjust_stock(chandelier_id, -7)

        with pytest.raises(InsufficientStockError):
            shop_tab.ordering.place_order("customer", [CartItem(product_id=chandelier_id, quantity=2)])

    def test_expired_code_rejected(self, shop_tab, ceiling_light_id):
        with pytest.raises(InvalidPromotionError):
            shop_tab.ordering.place_order(
                "customer",
                [CartItem(product_id=ceiling_light_id, quantity=1)],
                promo_code="NEWYEAR2026",
            )
        assert shop_tab.data_store.get_product(ceiling_light_id).stock == 45

    def test_empty_cart(self, shop_tab):
        with pytest.raises(EmptyCartError):
            shop_tab.ordering.place_order("customer", [])

    def test_order_ids_are_unique(self, shop_tab, ceiling_light_id):
        cart = [CartItem(product_id=ceiling_light_id, quantity=1)]
        first = shop_tab.ordering.place_order("customer", cart)
        second = shop_tab.ordering.place_order("customer", cart)
        assert first.id != second.id


class TestOrderStatus:
    def test_update_status(self, admin_tab, pending_order_id):
        events = record(admin_tab)

        order = admin_tab.ordering.update_order_status(pending_order_id, OrderStatus.PROCESSING)

        assert order.status == OrderStatus.PROCESSING
        assert admin_tab.data_store.get_order(pending_order_id).status == "processing"
        assert kinds(events) == [("orders", "update")]

    def test_total_is_not_recomputed(self, admin_tab, pending_order_id):
        before = admin_tab.data_store.get_order(pending_order_id).total
        admin_tab.ordering.update_order_status(pending_order_id, "processing")
        order = admin_tab.ordering.update_order_status(pending_order_id, "completed")
        assert order.total == before

    def test_unknown_order(self, admin_tab):
        assert admin_tab.ordering.update_order_status("o-missing", OrderStatus.CANCELLED) is None

    @pytest.mark.parametrize("path", [
        ["processing", "completed"],
        ["processing", "cancelled"],
        ["cancelled"],
    ])
    def test_allowed_transitions(self, admin_tab, pending_order_id, path):
        for status in path:
            order = admin_tab.ordering.update_order_status(pending_order_id, status)
        assert order.status == path[-1]
        assert admin_tab.data_store.get_order(pending_order_id).status == path[-1]

    @pytest.mark.parametrize("order_id, status", [
        ("o1", OrderStatus.COMPLETED),
        ("o1", OrderStatus.PENDING),
        ("o2", OrderStatus.PENDING),
        ("o3", OrderStatus.PENDING),
        ("o3", OrderStatus.CANCELLED),
    ])
    def test_disallowed_transitions(self, admin_tab, order_id, status):
        with pytest.raises(InvalidStatusTransitionError):
            admin_tab.ordering.update_order_status(order_id, status)

    def test_cancelled_is_final(self, admin_tab, pending_order_id):
        admin_tab.ordering.update_order_status(pending_order_id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            admin_tab.ordering.update_order_status(pending_order_id, OrderStatus.PROCESSING)
        assert str(exc_info.value) == "Cannot change order o1 from cancelled to processing"

    def test_rejected_transition_writes_nothing(self, admin_tab, completed_order_id):
        events = record(admin_tab)
        orders_before = admin_tab.data_store.get_orders()

        with pytest.raises(InvalidStatusTransitionError):
            admin_tab.ordering.update_order_status(completed_order_id, OrderStatus.PENDING)

        assert admin_tab.data_store.get_orders() == orders_before
        assert events == []


class TestPromotionsService:
    @pytest.fixture
    def spring_sale(self) -> Promotion:
        return Promotion(
            id="pr3",
            code="spring25",
            discount=25,
            valid_from=datetime.date(2026, 3, 1),
            valid_to=datetime.date(2026, 3, 31),
            max_uses=1,
            current_uses=0,
        )

    def test_validate_code_case_insensitive(self, admin_tab):
        assert admin_tab.promotions.validate_code("  welcome10 ").code == "WELCOME10"

    def test_validate_unknown_code(self, admin_tab):
        with pytest.raises(InvalidPromotionError) as exc_info:
            admin_tab.promotions.validate_code("FREESTUFF")
        assert str(exc_info.value) == "Invalid or expired promo code"

    def test_validate_inactive_code(self, admin_tab):
        promotion = admin_tab.promotions.find_by_code("WELCOME10")
        admin_tab.promotions.save_promotion(promotion.model_copy(update={"active": False}))

        with pytest.raises(InvalidPromotionError):
            admin_tab.promotions.validate_code("WELCOME10")

    def test_create_update_delete(self, admin_tab, spring_sale):
        events = record(admin_tab)

        admin_tab.promotions.save_promotion(spring_sale)
        assert admin_tab.data_store.get_promotions()[0].code == "SPRING25"

        admin_tab.promotions.save_promotion(spring_sale.model_copy(update={"discount": 30}))
        assert admin_tab.promotions.find_by_code("SPRING25").discount == 30
        assert len(admin_tab.data_store.get_promotions()) == 3

        assert admin_tab.promotions.delete_promotion("pr3") is True
        assert admin_tab.promotions.find_by_code("SPRING25") is None

        assert kinds(events) == [
            ("promotions", "create"),
            ("promotions", "update"),
            ("promotions", "delete"),
        ]

    def test_delete_unknown(self, admin_tab):
        assert admin_tab.promotions.delete_promotion("nope") is False

    def test_usage_limit(self, admin_tab, shop_tab, spring_sale, ceiling_light_id):
        admin_tab.promotions.save_promotion(spring_sale)
        cart = [CartItem(product_id=ceiling_light_id, quantity=1)]

        shop_tab.ordering.place_order("customer", cart, promo_code="SPRING25")

        with pytest.raises(PromotionLimitReachedError) as exc_info:
            shop_tab.ordering.place_order("customer", cart, promo_code="SPRING25")
        assert str(exc_info.value) == "This promo code has reached its usage limit"

    def test_zero_max_uses_is_unlimited(self, admin_tab, spring_sale):
        admin_tab.promotions.save_promotion(
            spring_sale.model_copy(update={"max_uses": 0, "current_uses": 500})
        )
        assert admin_tab.promotions.validate_code("SPRING25").discount == 25

    def test_record_use_unknown_code(self, admin_tab):
        events = record(admin_tab)
        assert admin_tab.promotions.record_use("NOPE") is None
        assert events == []


class TestReviewsService:
    def test_submit_review(self, shop_tab, pending_order_id, ceiling_light_id):
        events = record(shop_tab)
        order = shop_tab.data_store.get_order(pending_order_id)

        review = shop_tab.reviews.submit_review(
            order, ceiling_light_id, "Juan Santos", 5, "Bright and easy to install"
        )

        assert shop_tab.data_store.get_reviews()[0].id == review.id
        assert shop_tab.reviews.has_review_for_order(pending_order_id)
        assert kinds(events) == [("reviews", "create")]

    def test_product_must_be_in_order(self, shop_tab, pending_order_id, chandelier_id):
        order = shop_tab.data_store.get_order(pending_order_id)
        with pytest.raises(ValueError):
            shop_tab.reviews.submit_review(order, chandelier_id, "Juan Santos", 4)

    def test_rating_range(self, shop_tab, pending_order_id, ceiling_light_id):
        order = shop_tab.data_store.get_order(pending_order_id)
        with pytest.raises(ValueError):
            shop_tab.reviews.submit_review(order, ceiling_light_id, "Juan Santos", 6)

    def test_delete_review(self, admin_tab):
        events = record(admin_tab)

        assert admin_tab.reviews.delete_review("r1") is True
        assert admin_tab.reviews.delete_review("r1") is False
        assert kinds(events) == [("reviews", "delete")]

    def test_average_rating(self, shop_tab):
        assert shop_tab.reviews.average_rating("p3") == 5
        assert shop_tab.reviews.average_rating("p1") == 0.0


class TestDashboardOverview:
    def test_overview_from_fixtures(self, data_store, today):
        overview = build_overview(data_store, today)

        assert overview.total_products == 12
        assert overview.total_stock == 468
        assert {p.id for p in overview.low_stock_products} == {"p5", "p9", "p12"}
        assert overview.pending_orders == 1
        assert overview.total_revenue == 8394 + 5291
        assert overview.total_reviews == 2
        assert overview.active_promotions == 1

    def test_revenue_follows_status(self, admin_tab, pending_order_id, today):
        admin_tab.ordering.update_order_status(pending_order_id, OrderStatus.PROCESSING)
        admin_tab.ordering.update_order_status(pending_order_id, OrderStatus.COMPLETED)

        overview = build_overview(admin_tab.data_store, today)

        assert overview.pending_orders == 0
        assert overview.total_revenue == 8394 + 5291 + 6988


class TestIdentifiers:
    def test_unique_id_bumps_past_taken(self):
        taken = ["p100", "p101", "p103"]
        assert unique_id("p", taken, lambda: 100) == "p102"
        assert unique_id("p", taken, lambda: 104) == "p104"

    def test_same_millisecond_products(self, frozen_tab):
        fields = dict(
            category=ProductCategory.FIXTURES,
            price=1499,
            stock=20,
            low_stock_threshold=5,
            description="Weatherproof solar light",
        )
        first = frozen_tab.inventory.add_product(name="Solar Garden Light", **fields)
        second = frozen_tab.inventory.add_product(name="Solar Path Light", **fields)

        assert first.id != second.id
        frozen_tab.inventory.adjust_stock(first.id, -5)
        assert frozen_tab.data_store.get_product(first.id).stock == 15
        assert frozen_tab.data_store.get_product(second.id).stock == 20

    def test_same_millisecond_promotions(self, frozen_tab):
        events = record(frozen_tab)
        fields = dict(
            discount=15,
            valid_from=datetime.date(2026, 3, 1),
            valid_to=datetime.date(2026, 3, 31),
        )

        first = frozen_tab.promotions.create_promotion(code="SPRING15", **fields)
        second = frozen_tab.promotions.create_promotion(code="SPRING20", **fields)

        assert first.id != second.id
        assert len(frozen_tab.data_store.get_promotions()) == 4
        assert frozen_tab.promotions.find_by_code("SPRING15") is not None
        assert kinds(events) == [("promotions", "create"), ("promotions", "create")]

    def test_same_millisecond_reviews(self, frozen_tab, pending_order_id, ceiling_light_id):
        order = frozen_tab.data_store.get_order(pending_order_id)

        first = frozen_tab.reviews.submit_review(order, ceiling_light_id, "Juan Santos", 5)
        second = frozen_tab.reviews.submit_review(order, ceiling_light_id, "Juan Santos", 4)

        assert first.id != second.id
        assert frozen_tab.reviews.delete_review(first.id) is True
        assert [r.id for r in frozen_tab.data_store.get_reviews()].count(second.id) == 1

    def test_same_millisecond_orders(self, frozen_tab, ceiling_light_id):
        cart = [CartItem(product_id=ceiling_light_id, quantity=1)]

        first = frozen_tab.ordering.place_order("customer", cart)
        second = frozen_tab.ordering.place_order("customer", cart)

        assert first.id != second.id
        assert first.id.startswith("o")
