"""
Item Registry - metadata for courses and lessons (DB-backed).
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_access.kernel.errors import ItemAlreadyExists, ItemNotFound
from lms_access.kernel.events.event_store import EventStore
from lms_access.kernel.models.event_log import EventType
from lms_access.kernel.models.item import Item, ItemKind
from lms_access.logging_config import get_logger

logger = get_logger(__name__)


class ItemInfo(BaseModel):
    """Read-only view of an item."""

    id: str
    title: str
    kind: ItemKind


def _to_info(row: Item) -> ItemInfo:
    return ItemInfo(id=row.id, title=row.title, kind=ItemKind(row.kind))


class ItemRegistry:
    """
    Lookup and authoring operations for learning items.

    Reads are plain selects. Writes are logged to the event store and left for
    the caller's transaction to commit.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def _get_row(self, item_id: str) -> Optional[Item]:
        result = await self.session.execute(select(Item).where(Item.id == item_id))
        return result.scalar_one_or_none()

    async def get_item(self, item_id: str) -> Optional[ItemInfo]:
        """Get an item by id, or None if it is not registered."""
        row = await self._get_row(item_id)
        return _to_info(row) if row else None

    async def require_item(self, item_id: str, kind: Optional[ItemKind] = None) -> ItemInfo:
        """Get an item or raise ItemNotFound (also when the kind does not match)."""
        item = await self.get_item(item_id)
        if item is None or (kind is not None and item.kind != kind):
            raise ItemNotFound(item_id)
        return item

    async def item_exists(self, item_id: str) -> bool:
        result = await self.session.execute(select(Item.id).where(Item.id == item_id))
        return result.scalar_one_or_none() is not None

    async def get_items(self, item_ids: Iterable[str]) -> Dict[str, ItemInfo]:
        """Resolve many ids in one query. Unknown ids are absent from the result."""
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}
        result = await self.session.execute(select(Item).where(Item.id.in_(ids)))
        return {row.id: _to_info(row) for row in result.scalars().all()}

    async def list_items(self, kind: Optional[ItemKind] = None) -> List[ItemInfo]:
        query = select(Item)
        if kind is not None:
            query = query.where(Item.kind == kind.value)
        query = query.order_by(Item.created_at, Item.id)
        result = await self.session.execute(query)
        return [_to_info(row) for row in result.scalars().all()]

    async def create_item(
        self,
        title: str,
        kind: ItemKind,
        item_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> ItemInfo:
        """
        Register a new course or lesson.

        Raises:
            ItemAlreadyExists: an item with item_id is already registered
        """
        if item_id is not None and await self.item_exists(item_id):
            raise ItemAlreadyExists(item_id)

        row = Item(title=title, kind=kind.value)
        if item_id is not None:
            row.id = item_id
        self.session.add(row)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.ITEM_CREATED,
            entity_type="item",
            entity_id=row.id,
            actor_id=actor_id,
            payload={"title": title, "kind": kind.value},
        )
        logger.info("Item created", extra={"item_id": row.id, "kind": kind.value})
        return _to_info(row)

    async def rename_item(self, item_id: str, title: str, actor_id: Optional[str] = None) -> ItemInfo:
        """Update an item's title. Identity and kind never change."""
        row = await self._get_row(item_id)
        if row is None:
            raise ItemNotFound(item_id)

        previous = row.title
        row.title = title
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.ITEM_UPDATED,
            entity_type="item",
            entity_id=item_id,
            actor_id=actor_id,
            payload={"previous_title": previous, "title": title},
        )
        return _to_info(row)

    async def delete_item(self, item_id: str, actor_id: Optional[str] = None) -> ItemInfo:
        """
        Delete the item row.

        Edges are not touched here; PrerequisiteGraphStore.detach_item removes
        them under the writer lock and then calls this.
        """
        row = await self._get_row(item_id)
        if row is None:
            raise ItemNotFound(item_id)

        info = _to_info(row)
        await self.session.delete(row)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.ITEM_DELETED,
            entity_type="item",
            entity_id=item_id,
            actor_id=actor_id,
            payload={"title": info.title, "kind": info.kind.value},
        )
        return info
