"""
Prerequisite Graph Store - directed "requires" edges between items (DB-backed).

Reads are lock-free selects. Every mutation (add, remove, detach) runs the
existence checks, the cycle check, the write and the commit while holding the
graph writer lock, so two writers can never both pass the cycle check against
the same stale snapshot. After commit an AccessInvalidated event names the
touched item and everything that transitively depends on it.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from sqlalchemy import delete, or_, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_access.engines.access.item_registry import ItemInfo, ItemRegistry
from lms_access.engines.access.mutation_guard import Edge, GraphMutationGuard, transitive_dependents
from lms_access.kernel.errors import CycleRejected, EdgeAlreadyExists, EdgeNotFound, SelfReferenceRejected
from lms_access.kernel.events.event_store import EventStore
from lms_access.kernel.events.invalidation import (
    AccessInvalidated,
    InvalidationBus,
    InvalidationReason,
    get_invalidation_bus,
)
from lms_access.kernel.models.event_log import EventType
from lms_access.kernel.models.item import ItemKind
from lms_access.kernel.models.prerequisite import PrerequisiteEdge
from lms_access.logging_config import get_logger

logger = get_logger(__name__)

# Arbitrary constant shared by every worker process for pg_advisory_xact_lock
GRAPH_ADVISORY_LOCK_KEY = 0x5052455245  # "PRERE"

_write_locks: Dict[asyncio.AbstractEventLoop, asyncio.Lock] = {}


def graph_write_lock() -> asyncio.Lock:
    """The writer lock for the running event loop (one per process and loop)."""
    loop = asyncio.get_running_loop()
    for stale in [l for l in _write_locks if l.is_closed()]:
        del _write_locks[stale]
    lock = _write_locks.get(loop)
    if lock is None:
        lock = _write_locks[loop] = asyncio.Lock()
    return lock


class PrerequisiteGraphStore:
    """
    Owns prerequisite edges.

    Mutations own the transaction of the session they were given: success
    commits it, any rejection rolls it back (a rejected cycle then commits
    only its audit row). Invalidations are published only after a commit.
    """

    def __init__(
        self,
        session: AsyncSession,
        bus: Optional[InvalidationBus] = None,
        guard: Optional[GraphMutationGuard] = None,
        write_lock: Optional[asyncio.Lock] = None,
    ):
        self.session = session
        self.registry = ItemRegistry(session)
        self.event_store = EventStore(session)
        self.bus = bus if bus is not None else get_invalidation_bus()
        self.guard = guard or GraphMutationGuard()
        self._write_lock = write_lock

    # ==================== Reads ====================

    async def list_prerequisites_of(self, item_id: str) -> List[str]:
        """Direct prerequisites of item_id, in edge insertion order."""
        query = (
            select(PrerequisiteEdge.prerequisite_id)
            .where(PrerequisiteEdge.item_id == item_id)
            .order_by(PrerequisiteEdge.seq)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_dependents(self, item_id: str) -> List[str]:
        """Items that name item_id as a direct prerequisite, in insertion order."""
        query = (
            select(PrerequisiteEdge.item_id)
            .where(PrerequisiteEdge.prerequisite_id == item_id)
            .order_by(PrerequisiteEdge.seq)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def edges(self) -> List[Edge]:
        """Snapshot of every edge as (item_id, prerequisite_id), insertion order."""
        query = select(PrerequisiteEdge.item_id, PrerequisiteEdge.prerequisite_id).order_by(
            PrerequisiteEdge.seq
        )
        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def has_edge(self, item_id: str, prerequisite_id: str) -> bool:
        return await self._get_edge(item_id, prerequisite_id) is not None

    async def collect_dependents(self, item_id: str) -> List[str]:
        """
        Every item that transitively requires item_id, breadth-first.

        item_id itself is not included.
        """
        return transitive_dependents(item_id, await self.edges())

    # ==================== Mutations ====================

    async def add_edge(
        self,
        item_id: str,
        prerequisite_id: str,
        kind: Optional[ItemKind] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        """
        Make prerequisite_id a prerequisite of item_id.

        Args:
            item_id: The item that gains a requirement
            prerequisite_id: The item that must be completed first
            kind: If given, both items must be of this kind
            actor_id: Who asked (for the audit log)

        Raises:
            SelfReferenceRejected, ItemNotFound, EdgeAlreadyExists, CycleRejected
        """
        if item_id == prerequisite_id:
            raise SelfReferenceRejected(item_id)

        async with self._writer():
            await self.registry.require_item(item_id, kind)
            await self.registry.require_item(prerequisite_id, kind)

            if await self.has_edge(item_id, prerequisite_id):
                raise EdgeAlreadyExists(item_id, prerequisite_id)

            try:
                self.guard.validate_new_edge(item_id, prerequisite_id, await self.edges())
            except CycleRejected:
                # Discard whatever else the session held; only the audit row commits
                await self.session.rollback()
                await self.event_store.log(
                    event_type=EventType.PREREQUISITE_REJECTED,
                    entity_type="item",
                    entity_id=item_id,
                    actor_id=actor_id,
                    payload={"prerequisite_id": prerequisite_id, "reason": CycleRejected.code},
                )
                await self.session.commit()
                raise

            self.session.add(PrerequisiteEdge(item_id=item_id, prerequisite_id=prerequisite_id))
            try:
                await self.session.flush()
            except IntegrityError:
                # Lost a race with a writer in another process (SQLite only;
                # PostgreSQL writers hold the advisory lock)
                await self.session.rollback()
                raise EdgeAlreadyExists(item_id, prerequisite_id)

            await self.event_store.log(
                event_type=EventType.PREREQUISITE_ADDED,
                entity_type="item",
                entity_id=item_id,
                actor_id=actor_id,
                payload={"prerequisite_id": prerequisite_id},
            )
            affected = [item_id] + await self.collect_dependents(item_id)
            await self.session.commit()

        logger.info(
            "Prerequisite added",
            extra={"item_id": item_id, "prerequisite_id": prerequisite_id},
        )
        await self.bus.publish(
            AccessInvalidated(
                item_ids=affected,
                reason=InvalidationReason.PREREQUISITE_ADDED,
                trigger=(item_id, prerequisite_id),
            )
        )

    async def remove_edge(
        self,
        item_id: str,
        prerequisite_id: str,
        actor_id: Optional[str] = None,
    ) -> None:
        """
        Remove the edge item_id -> prerequisite_id.

        Raises:
            EdgeNotFound: the edge does not exist
        """
        async with self._writer():
            edge = await self._get_edge(item_id, prerequisite_id)
            if edge is None:
                raise EdgeNotFound(item_id, prerequisite_id)

            await self.session.delete(edge)
            await self.session.flush()

            await self.event_store.log(
                event_type=EventType.PREREQUISITE_REMOVED,
                entity_type="item",
                entity_id=item_id,
                actor_id=actor_id,
                payload={"prerequisite_id": prerequisite_id},
            )
            affected = [item_id] + await self.collect_dependents(item_id)
            await self.session.commit()

        logger.info(
            "Prerequisite removed",
            extra={"item_id": item_id, "prerequisite_id": prerequisite_id},
        )
        await self.bus.publish(
            AccessInvalidated(
                item_ids=affected,
                reason=InvalidationReason.PREREQUISITE_REMOVED,
                trigger=(item_id, prerequisite_id),
            )
        )

    async def detach_item(self, item_id: str, actor_id: Optional[str] = None) -> ItemInfo:
        """
        Delete an item together with every edge that references it.

        Items that (transitively) depended on the deleted item get an
        invalidation, since one of their requirements just disappeared.

        Raises:
            ItemNotFound: item_id is not registered
        """
        async with self._writer():
            await self.registry.require_item(item_id)

            affected = [item_id] + await self.collect_dependents(item_id)
            result = await self.session.execute(
                delete(PrerequisiteEdge).where(
                    or_(
                        PrerequisiteEdge.item_id == item_id,
                        PrerequisiteEdge.prerequisite_id == item_id,
                    )
                )
            )
            removed = result.rowcount or 0
            info = await self.registry.delete_item(item_id, actor_id=actor_id)
            await self.session.commit()

        logger.info("Item detached", extra={"item_id": item_id, "edges_removed": removed})
        await self.bus.publish(
            AccessInvalidated(item_ids=affected, reason=InvalidationReason.ITEM_DELETED)
        )
        return info

    # ==================== Internals ====================

    async def _get_edge(self, item_id: str, prerequisite_id: str) -> Optional[PrerequisiteEdge]:
        query = select(PrerequisiteEdge).where(
            PrerequisiteEdge.item_id == item_id,
            PrerequisiteEdge.prerequisite_id == prerequisite_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @asynccontextmanager
    async def _writer(self) -> AsyncIterator[None]:
        """Hold the graph writer lock; roll back whatever the block left uncommitted."""
        lock = self._write_lock or graph_write_lock()
        async with lock:
            try:
                if self.session.get_bind().dialect.name == "postgresql":
                    await self.session.execute(
                        text("SELECT pg_advisory_xact_lock(:key)"),
                        {"key": GRAPH_ADVISORY_LOCK_KEY},
                    )
                yield
            except BaseException:
                await self.session.rollback()
                raise
