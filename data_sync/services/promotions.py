"""
Promotions service: promo code management and validation.

The admin console creates, edits and deletes promotions; the customer cart
validates codes and the ordering service records their use. Every write
saves the whole promotions collection and broadcasts a promotions event.
"""

import datetime
import logging
from typing import Callable, Optional

from data_sync.events import ChangeAction, SyncEventType
from data_sync.services.identity import unique_id
from data_sync.sync import DataSync
from storefront.data_store import DataStore
from storefront.models import Promotion

logger = logging.getLogger("promotions_service")


class PromotionError(ValueError):
    """A promo code cannot be applied."""


class InvalidPromotionError(PromotionError):
    def __init__(self, code: str):
        super().__init__("Invalid or expired promo code")
        self.code = code


class PromotionLimitReachedError(PromotionError):
    def __init__(self, code: str):
        super().__init__("This promo code has reached its usage limit")
        self.code = code


class PromotionsService:
    """
    Promotion lifecycle and promo code checks.

    Example:
        service = PromotionsService(sync, data_store)
        promo = service.validate_code("welcome10")   # case-insensitive
        service.record_use(promo.code)               # broadcasts promotions/update
    """

    def __init__(
        self,
        sync: DataSync,
        data_store: DataStore,
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        self.sync = sync
        self.data_store = data_store
        self.today = today or datetime.date.today

    def find_by_code(self, code: str) -> Optional[Promotion]:
        return next((p for p in self.data_store.get_promotions() if p.matches(code)), None)

    def validate_code(self, code: str, today: Optional[datetime.date] = None) -> Promotion:
        """
        Return the promotion for a code the customer may use right now.

        Raises:
            InvalidPromotionError: unknown, inactive or outside its dates
            PromotionLimitReachedError: max_uses already reached
        """
        today = today or self.today()
        promotion = next(
            (
                p for p in self.data_store.get_promotions()
                if p.matches(code) and p.is_in_window(today)
            ),
            None,
        )
        if promotion is None:
            raise InvalidPromotionError(code)
        if promotion.has_reached_limit:
            raise PromotionLimitReachedError(code)
        return promotion

    def create_promotion(self, **fields) -> Promotion:
        """
        Add a new promotion with a fresh id and broadcast promotions/create.

        `fields` are the Promotion fields other than `id`.
        """
        promotions = self.data_store.get_promotions()
        promotion = Promotion(
            id=unique_id("pr", (p.id for p in promotions), self.sync.clock),
            **fields,
        )
        self.data_store.save_promotions([promotion] + promotions)
        logger.info(f"Promotion {promotion.code} created as {promotion.id}")
        self.sync.broadcast_change(SyncEventType.PROMOTIONS, ChangeAction.CREATE)
        return promotion

    def save_promotion(self, promotion: Promotion) -> Promotion:
        """
        Create a promotion, or replace the one with the same id.

        New promotions go to the front of the list, as the console shows them.
        """
        promotions = self.data_store.get_promotions()
        exists = any(p.id == promotion.id for p in promotions)
        if exists:
            promotions = [promotion if p.id == promotion.id else p for p in promotions]
        else:
            promotions = [promotion] + promotions
        self.data_store.save_promotions(promotions)

        action = ChangeAction.UPDATE if exists else ChangeAction.CREATE
        logger.info(f"Promotion {promotion.code} saved ({action.value})")
        self.sync.broadcast_change(SyncEventType.PROMOTIONS, action)
        return promotion

    def delete_promotion(self, promotion_id: str) -> bool:
        promotions = self.data_store.get_promotions()
        remaining = [p for p in promotions if p.id != promotion_id]
        if len(remaining) == len(promotions):
            logger.error(f"Promotion not found: {promotion_id}")
            return False
        self.data_store.save_promotions(remaining)
        logger.info(f"Promotion {promotion_id} deleted")
        self.sync.broadcast_change(SyncEventType.PROMOTIONS, ChangeAction.DELETE)
        return True

    def record_use(self, code: str) -> Optional[Promotion]:
        """Increment the usage counter of every promotion matching the code."""
        promotions = self.data_store.get_promotions()
        updated_promotion = None
        updated = []
        for promotion in promotions:
            if promotion.matches(code):
                promotion = promotion.model_copy(
                    update={"current_uses": (promotion.current_uses or 0) + 1}
                )
                updated_promotion = promotion
            updated.append(promotion)

        if updated_promotion is None:
            logger.warning(f"No promotion to record use for: {code}")
            return None

        self.data_store.save_promotions(updated)
        self.sync.broadcast_change(SyncEventType.PROMOTIONS, ChangeAction.UPDATE)
        return updated_promotion
