"""
Access Evaluator - may this learner open this item?

Stateless: every call reads the graph, the registry and the completion
tracker afresh and caches nothing.

Policy:
- No prerequisites means open to everyone.
- Only direct (one hop) prerequisites are checked. A prerequisite's own
  prerequisites gate that prerequisite, not this item.
- A prerequisite id the registry cannot resolve is always missing, so broken
  data can never grant access.
- If the completion tracker fails, the whole evaluation fails with
  DependencyUnavailable instead of guessing.
"""

from typing import List, Optional

from pydantic import BaseModel

from lms_access.engines.access.completion_tracker import CompletionTracker
from lms_access.engines.access.graph_store import PrerequisiteGraphStore
from lms_access.engines.access.item_registry import ItemRegistry
from lms_access.kernel.models.item import ItemKind
from lms_access.logging_config import get_logger

logger = get_logger(__name__)


class MissingPrerequisite(BaseModel):
    """An unmet prerequisite. title is None when the item no longer resolves."""

    id: str
    title: Optional[str] = None


class AccessDecision(BaseModel):
    """Result of one access evaluation. Never stored."""

    has_access: bool
    missing_prerequisites: List[MissingPrerequisite] = []


class AccessEvaluator:
    """Computes AccessDecision for (learner, item)."""

    def __init__(
        self,
        graph: PrerequisiteGraphStore,
        registry: ItemRegistry,
        completions: CompletionTracker,
    ):
        self.graph = graph
        self.registry = registry
        self.completions = completions

    async def check_access(
        self,
        learner_id: str,
        item_id: str,
        kind: Optional[ItemKind] = None,
    ) -> AccessDecision:
        """
        Decide whether learner_id may access item_id.

        Args:
            learner_id: The learner asking
            item_id: The course or lesson being opened
            kind: If given, item_id must be of this kind

        Returns:
            AccessDecision with missing prerequisites in edge insertion order

        Raises:
            ItemNotFound: item_id is not registered (or not of kind)
            DependencyUnavailable: the completion tracker could not answer
        """
        await self.registry.require_item(item_id, kind)

        prerequisite_ids = await self.graph.list_prerequisites_of(item_id)
        if not prerequisite_ids:
            return AccessDecision(has_access=True, missing_prerequisites=[])

        known = await self.registry.get_items(prerequisite_ids)

        missing: List[MissingPrerequisite] = []
        for prerequisite_id in prerequisite_ids:
            item = known.get(prerequisite_id)
            if item is None:
                logger.warning(
                    "Prerequisite does not resolve to an item; treating as missing",
                    extra={"item_id": item_id, "prerequisite_id": prerequisite_id},
                )
                missing.append(MissingPrerequisite(id=prerequisite_id))
                continue
            if not await self.completions.is_completed(learner_id, prerequisite_id):
                missing.append(MissingPrerequisite(id=item.id, title=item.title))

        decision = AccessDecision(has_access=not missing, missing_prerequisites=missing)
        logger.debug(
            "Access evaluated",
            extra={
                "learner_id": learner_id,
                "item_id": item_id,
                "has_access": decision.has_access,
                "missing_count": len(missing),
            },
        )
        return decision
