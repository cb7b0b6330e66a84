"""
Change events exchanged between tabs.

A change event says which collection changed and how. It carries no data:
receivers re-read the collection from storage. Events are transient and are
never persisted or replayed.

Wire shape (used on every transport):
    {"type": "products", "action": "update", "timestamp": 1769040000000}

Design decisions:
- "inventory" is an event-only type with no storage key; by convention it
  is broadcast alongside "products" whenever stock changes
- Overlapping types are not merged; subscribers list every type they need
- The timestamp must be a JSON integer; strings and floats are malformed
"""

import time
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, StrictInt, ValidationError


class SyncEventType(str, Enum):
    """The collections a change event can refer to."""
    ORDERS = "orders"
    PRODUCTS = "products"
    PROMOTIONS = "promotions"
    REVIEWS = "reviews"
    INVENTORY = "inventory"


class ChangeAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class MalformedEventError(ValueError):
    """A payload received from another tab is not a valid change event."""


def now_ms() -> int:
    """Current time in integer milliseconds since the epoch."""
    return int(time.time() * 1000)


class ChangeEvent(BaseModel):
    """
    Notification that a collection was written.

    Attributes:
        type: Which collection (or "inventory") changed
        action: create, update or delete
        timestamp: When the writer broadcast it, in ms since the epoch
    """
    model_config = ConfigDict(frozen=True)

    type: SyncEventType
    action: ChangeAction
    timestamp: StrictInt

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "action": self.action.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_wire(cls, payload: Union[str, bytes, dict]) -> "ChangeEvent":
        """
        Parse a payload from a transport (JSON text or an already decoded dict).

        Raises MalformedEventError for anything that is not a change event.
        """
        try:
            if isinstance(payload, (str, bytes)):
                return cls.model_validate_json(payload)
            if isinstance(payload, dict):
                return cls.model_validate(payload)
        except ValidationError as e:
            raise MalformedEventError(f"Invalid change event: {e.error_count()} errors") from e
        raise MalformedEventError(f"Unsupported payload type: {type(payload).__name__}")

    def __str__(self) -> str:
        return f"ChangeEvent({self.type.value}/{self.action.value} @ {self.timestamp})"
