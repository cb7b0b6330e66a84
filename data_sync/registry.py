"""
In-memory subscription registry for one tab.

Every change event that reaches a tab, whether broadcast locally or received
from another tab, is fanned out through this registry.

Design decisions:
- Synchronous delivery in registration order
- Each subscribe() call is an independent subscription, even for the same
  callback
- The registry is snapshotted at the start of a dispatch: subscriptions
  added meanwhile wait for the next event, and subscriptions removed
  meanwhile (including by their own callback) are skipped
- A failing callback is logged and does not stop delivery to the others
- Nothing is persisted; a new tab starts with an empty registry
"""

import logging
from dataclasses import dataclass
from typing import Callable

from data_sync.events import ChangeEvent

logger = logging.getLogger("subscription_registry")


ChangeListener = Callable[[ChangeEvent], None]
Unsubscribe = Callable[[], None]


@dataclass
class _Subscription:
    token: int
    callback: ChangeListener
    active: bool = True


class SubscriptionRegistry:
    """
    Mutable set of change listeners scoped to one tab.

    Example:
        registry = SubscriptionRegistry()
        unsubscribe = registry.subscribe(lambda e: print(e))
        registry.dispatch(event)   # prints the event
        unsubscribe()
        unsubscribe()              # no-op
    """

    def __init__(self):
        self._subscriptions: dict[int, _Subscription] = {}
        self._next_token = 0

    def subscribe(self, callback: ChangeListener) -> Unsubscribe:
        """
        Register a callback for every change event dispatched in this tab.

        Returns a disposer that removes this subscription. Calling the
        disposer again has no effect.
        """
        subscription = _Subscription(token=self._next_token, callback=callback)
        self._next_token += 1
        self._subscriptions[subscription.token] = subscription
        logger.debug(f"Subscribed listener #{subscription.token}")

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            self._subscriptions.pop(subscription.token, None)
            logger.debug(f"Unsubscribed listener #{subscription.token}")

        return unsubscribe

    def dispatch(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every active subscription.

        Returns:
            Number of callbacks invoked (including ones that raised)
        """
        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if not subscription.active:
                continue
            delivered += 1
            try:
                subscription.callback(event)
            except Exception as e:
                logger.error(f"Listener #{subscription.token} raised for {event}: {e}")
        return delivered

    def clear(self) -> None:
        """Deactivate and drop every subscription (the tab is closing)."""
        for subscription in self._subscriptions.values():
            subscription.active = False
        self._subscriptions.clear()

    def __len__(self) -> int:
        return len(self._subscriptions)
