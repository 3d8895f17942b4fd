"""
Prerequisite management and access check endpoints.

Courses and lessons share one graph but are managed through separate
collections; both ends of an edge must be of the collection's kind.
"""

from enum import Enum

from fastapi import APIRouter, Query, status

from lms_access.api.deps import ActorId, Evaluator, GraphStore, Registry
from lms_access.kernel.models.item import ItemKind
from lms_access.logging_config import get_logger
from lms_access.schemas.access import (
    AccessCheckResponse,
    DependentListResponse,
    MissingPrerequisiteResponse,
    PrerequisiteAddRequest,
    PrerequisiteListResponse,
)
from lms_access.schemas.common import SuccessResponse
from lms_access.schemas.item import ItemResponse

logger = get_logger(__name__)

router = APIRouter()


class ItemCollection(str, Enum):
    COURSES = "courses"
    LESSONS = "lessons"

    @property
    def kind(self) -> ItemKind:
        return ItemKind.COURSE if self is ItemCollection.COURSES else ItemKind.LESSON


@router.get("/{collection}/{item_id}/prerequisites", response_model=PrerequisiteListResponse)
async def list_prerequisites(
    collection: ItemCollection,
    item_id: str,
    graph: GraphStore,
    registry: Registry,
):
    """Direct prerequisites of an item, oldest first."""
    await registry.require_item(item_id, collection.kind)
    ids = await graph.list_prerequisites_of(item_id)
    items = await registry.get_items(ids)
    return PrerequisiteListResponse(
        item_id=item_id,
        prerequisites=[ItemResponse(**items[i].model_dump()) for i in ids if i in items],
    )


@router.post(
    "/{collection}/{item_id}/prerequisites",
    response_model=SuccessResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_prerequisite(
    collection: ItemCollection,
    item_id: str,
    body: PrerequisiteAddRequest,
    graph: GraphStore,
    actor_id: ActorId,
):
    """Require completion of another item of the same kind before this one."""
    await graph.add_edge(item_id, body.prerequisite_id, kind=collection.kind, actor_id=actor_id)
    return SuccessResponse(
        message="Prerequisite added successfully",
        data={"item_id": item_id, "prerequisite_id": body.prerequisite_id},
    )


@router.delete("/{collection}/{item_id}/prerequisites/{prerequisite_id}", response_model=SuccessResponse)
async def remove_prerequisite(
    collection: ItemCollection,
    item_id: str,
    prerequisite_id: str,
    graph: GraphStore,
    registry: Registry,
    actor_id: ActorId,
):
    await registry.require_item(item_id, collection.kind)
    await graph.remove_edge(item_id, prerequisite_id, actor_id=actor_id)
    return SuccessResponse(
        message="Prerequisite removed successfully",
        data={"item_id": item_id, "prerequisite_id": prerequisite_id},
    )


@router.get("/{collection}/{item_id}/dependents", response_model=DependentListResponse)
async def list_dependents(
    collection: ItemCollection,
    item_id: str,
    graph: GraphStore,
    registry: Registry,
    transitive: bool = False,
):
    """Items that require this one, directly or (transitive=true) through a chain."""
    await registry.require_item(item_id, collection.kind)
    if transitive:
        ids = await graph.collect_dependents(item_id)
    else:
        ids = await graph.list_dependents(item_id)
    items = await registry.get_items(ids)
    return DependentListResponse(
        item_id=item_id,
        dependents=[ItemResponse(**items[i].model_dump()) for i in ids if i in items],
        transitive=transitive,
    )


@router.get("/{collection}/{item_id}/access", response_model=AccessCheckResponse)
async def check_access(
    collection: ItemCollection,
    item_id: str,
    evaluator: Evaluator,
    learner_id: str = Query(..., min_length=1, max_length=64),
):
    """
    Decide whether a learner may open a course or lesson.

    A locked item is a normal 200 with has_access=false. A completion tracker
    outage is a 503, never a denial.
    """
    decision = await evaluator.check_access(learner_id, item_id, kind=collection.kind)
    return AccessCheckResponse(
        has_access=decision.has_access,
        missing_prerequisites=[
            MissingPrerequisiteResponse(id=m.id, title=m.title)
            for m in decision.missing_prerequisites
        ],
    )
