"""
Audit logging and access invalidation events.
"""

from lms_access.kernel.events.event_store import EventStore
from lms_access.kernel.events.invalidation import (
    AccessInvalidated,
    InvalidationBus,
    InvalidationReason,
    get_invalidation_bus,
)

__all__ = [
    "EventStore",
    "AccessInvalidated",
    "InvalidationBus",
    "InvalidationReason",
    "get_invalidation_bus",
]
