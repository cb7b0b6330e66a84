"""
Reviews service: customer reviews and their moderation.
"""

import datetime
import logging
from typing import Callable, Optional

from data_sync.events import ChangeAction, SyncEventType
from data_sync.services.identity import unique_id
from data_sync.sync import DataSync
from storefront.data_store import DataStore
from storefront.models import Order, Review

logger = logging.getLogger("reviews_service")


class ReviewsService:
    """
    Review submission (customer) and deletion (admin).

    The console offers the review action once per order. That is a display
    rule only; submit_review() does not refuse a second review.
    """

    def __init__(
        self,
        sync: DataSync,
        data_store: DataStore,
        clock: Optional[Callable[[], int]] = None,
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        self.sync = sync
        self.data_store = data_store
        self.clock = clock or sync.clock
        self.today = today or datetime.date.today

    def submit_review(
        self,
        order: Order,
        product_id: str,
        customer_name: str,
        rating: int,
        comment: str = "",
    ) -> Review:
        """
        Save a review for one product of an order and broadcast reviews/create.

        Raises:
            ValueError: the product is not part of the order
            pydantic.ValidationError: rating outside 1..5
        """
        if not any(item.product_id == product_id for item in order.items):
            raise ValueError(f"Product {product_id} is not part of order {order.id}")

        reviews = self.data_store.get_reviews()
        review = Review(
            id=unique_id("r", (r.id for r in reviews), self.clock),
            product_id=product_id,
            order_id=order.id,
            customer_name=customer_name,
            rating=rating,
            comment=comment,
            date=self.today(),
        )
        self.data_store.save_reviews([review] + reviews)
        logger.info(f"Review {review.id} ({rating}/5) for {product_id} by {customer_name}")

        self.sync.broadcast_change(SyncEventType.REVIEWS, ChangeAction.CREATE)
        return review

    def delete_review(self, review_id: str) -> bool:
        reviews = self.data_store.get_reviews()
        remaining = [r for r in reviews if r.id != review_id]
        if len(remaining) == len(reviews):
            logger.error(f"Review not found: {review_id}")
            return False
        self.data_store.save_reviews(remaining)
        self.sync.broadcast_change(SyncEventType.REVIEWS, ChangeAction.DELETE)
        return True

    def has_review_for_order(self, order_id: str) -> bool:
        return any(r.order_id == order_id for r in self.data_store.get_reviews())

    def average_rating(self, product_id: str) -> float:
        """Mean rating of a product, 0 when it has no reviews."""
        reviews = self.data_store.get_reviews_for_product(product_id)
        if not reviews:
            return 0.0
        return sum(r.rating for r in reviews) / len(reviews)
