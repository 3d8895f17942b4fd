"""
Item endpoints - the course/lesson authoring side the graph depends on.
"""

from typing import Optional

from fastapi import APIRouter, status

from lms_access.api.deps import ActorId, GraphStore, Registry
from lms_access.kernel.errors import ItemNotFound
from lms_access.kernel.models.item import ItemKind
from lms_access.schemas.item import ItemCreate, ItemListResponse, ItemResponse, ItemUpdate

router = APIRouter()


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(body: ItemCreate, registry: Registry, actor_id: ActorId):
    """Register a course or lesson."""
    item = await registry.create_item(body.title, body.kind, item_id=body.id, actor_id=actor_id)
    return ItemResponse(**item.model_dump())


@router.get("", response_model=ItemListResponse)
async def list_items(registry: Registry, kind: Optional[ItemKind] = None):
    """List registered items, optionally only courses or only lessons."""
    items = await registry.list_items(kind)
    return ItemListResponse(
        items=[ItemResponse(**item.model_dump()) for item in items],
        total=len(items),
    )


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: str, registry: Registry):
    item = await registry.get_item(item_id)
    if item is None:
        raise ItemNotFound(item_id)
    return ItemResponse(**item.model_dump())


@router.patch("/{item_id}", response_model=ItemResponse)
async def rename_item(item_id: str, body: ItemUpdate, registry: Registry, actor_id: ActorId):
    """Change an item's title. Cached access decisions keep their ids, so no invalidation."""
    item = await registry.rename_item(item_id, body.title, actor_id=actor_id)
    return ItemResponse(**item.model_dump())


@router.delete("/{item_id}", response_model=ItemResponse)
async def delete_item(item_id: str, graph: GraphStore, actor_id: ActorId):
    """Delete an item and every prerequisite edge that references it."""
    item = await graph.detach_item(item_id, actor_id=actor_id)
    return ItemResponse(**item.model_dump())
