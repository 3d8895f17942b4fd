"""
Access invalidation events.

Adding or removing a prerequisite can change access decisions for the item
itself and for anything that (transitively) depends on it. The graph store
publishes one AccessInvalidated per committed mutation; caches subscribe.
"""

import inspect
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from lms_access.logging_config import get_logger

logger = get_logger(__name__)


class InvalidationReason(str, Enum):
    PREREQUISITE_ADDED = "prerequisite_added"
    PREREQUISITE_REMOVED = "prerequisite_removed"
    ITEM_DELETED = "item_deleted"


class AccessInvalidated(BaseModel):
    """Cached access decisions for these items are stale."""

    item_ids: List[str]
    reason: InvalidationReason
    trigger: Optional[Tuple[str, str]] = None  # (item_id, prerequisite_id)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[AccessInvalidated], Union[None, Awaitable[None]]]


class InvalidationBus:
    """
    In-process fan-out of AccessInvalidated events.

    Subscribers may be plain functions or coroutines. Publishing happens after
    commit, so a subscriber failure is logged and never undoes the mutation.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: AccessInvalidated) -> None:
        if not event.item_ids:
            return
        logger.debug(
            "Publishing access invalidation",
            extra={"reason": event.reason.value, "item_count": len(event.item_ids)},
        )
        for subscriber in list(self._subscribers):
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Invalidation subscriber failed",
                    extra={"subscriber": getattr(subscriber, "__qualname__", repr(subscriber))},
                )


_default_bus = InvalidationBus()


def get_invalidation_bus() -> InvalidationBus:
    """Process-wide bus used by the API layer."""
    return _default_bus
