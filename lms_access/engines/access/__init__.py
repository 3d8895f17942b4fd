"""
Access Engine - prerequisite-gated access to courses and lessons.

Components:
- ItemRegistry: course and lesson metadata
- PrerequisiteGraphStore: "requires" edges, serialized writers, invalidation events
- GraphMutationGuard: rejects edges that would close a cycle
- AccessEvaluator: one-hop prerequisite check against the completion tracker
"""

from lms_access.engines.access.access_evaluator import (
    AccessDecision,
    AccessEvaluator,
    MissingPrerequisite,
)
from lms_access.engines.access.completion_tracker import (
    CompletionRecord,
    CompletionTracker,
    DatabaseCompletionTracker,
    HttpCompletionTracker,
)
from lms_access.engines.access.graph_store import PrerequisiteGraphStore, graph_write_lock
from lms_access.engines.access.item_registry import ItemInfo, ItemRegistry
from lms_access.engines.access.mutation_guard import (
    GraphMutationGuard,
    find_requirement_path,
    would_create_cycle,
)

__all__ = [
    "AccessDecision",
    "AccessEvaluator",
    "MissingPrerequisite",
    "CompletionRecord",
    "CompletionTracker",
    "DatabaseCompletionTracker",
    "HttpCompletionTracker",
    "PrerequisiteGraphStore",
    "graph_write_lock",
    "ItemInfo",
    "ItemRegistry",
    "GraphMutationGuard",
    "find_requirement_path",
    "would_create_cycle",
]
