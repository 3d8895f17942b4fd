"""
Kernel Data Models

SQLAlchemy models for items, the prerequisite graph, completions and the
audit log.
"""

from lms_access.kernel.models.base import Base, TimestampMixin, generate_id
from lms_access.kernel.models.item import Item, ItemKind
from lms_access.kernel.models.prerequisite import PrerequisiteEdge
from lms_access.kernel.models.completion import CompletionRecord
from lms_access.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_id",
    # Items & graph
    "Item",
    "ItemKind",
    "PrerequisiteEdge",
    # Progress
    "CompletionRecord",
    # Event Log
    "EventLog",
    "EventType",
]
