"""
Stable Kernel Layer

Foundational pieces the engines build on:
- Item, prerequisite edge and completion tables
- Immutable Event Log (all mutations logged before commit)
- Typed access control errors
- Access invalidation events

Architectural invariants:
- The prerequisite graph is acyclic at every commit
- All state changes logged before commit; logs immutable
"""

from lms_access.kernel.models import (
    Item,
    ItemKind,
    PrerequisiteEdge,
    CompletionRecord,
    EventLog,
    EventType,
)
from lms_access.kernel.errors import (
    AccessControlError,
    CycleRejected,
    DependencyUnavailable,
    EdgeAlreadyExists,
    EdgeNotFound,
    ItemAlreadyExists,
    ItemNotFound,
    SelfReferenceRejected,
)

__all__ = [
    # Items & graph
    "Item",
    "ItemKind",
    "PrerequisiteEdge",
    "CompletionRecord",
    # Event Log
    "EventLog",
    "EventType",
    # Errors
    "AccessControlError",
    "CycleRejected",
    "DependencyUnavailable",
    "EdgeAlreadyExists",
    "EdgeNotFound",
    "ItemAlreadyExists",
    "ItemNotFound",
    "SelfReferenceRejected",
]
