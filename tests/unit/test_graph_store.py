"""
Unit tests for PrerequisiteGraphStore.

Runs against a real SQLite database so ordering, constraints and the
commit-then-publish sequence are exercised end to end.
"""

import asyncio
import random

import pytest
from sqlalchemy import select

from lms_access.engines.access.graph_store import PrerequisiteGraphStore
from lms_access.engines.access.item_registry import ItemRegistry
from lms_access.engines.access.mutation_guard import find_requirement_path, would_create_cycle
from lms_access.kernel.errors import (
    CycleRejected,
    EdgeAlreadyExists,
    EdgeNotFound,
    ItemNotFound,
    SelfReferenceRejected,
)
from lms_access.kernel.events.event_store import EventStore
from lms_access.kernel.events.invalidation import InvalidationBus, InvalidationReason
from lms_access.kernel.models import EventLog, ItemKind
from lms_access.kernel.models.event_log import EventType


class TestAddEdge:
    """Adding prerequisites."""

    @pytest.mark.asyncio
    async def test_add_and_list_in_insertion_order(self, graph, make_items):
        await make_items("A", "X", "Y", "Z")

        await graph.add_edge("A", "Y")
        await graph.add_edge("A", "Z")
        await graph.add_edge("A", "X")

        assert await graph.list_prerequisites_of("A") == ["Y", "Z", "X"]

    @pytest.mark.asyncio
    async def test_no_prerequisites_is_empty_list(self, graph, make_items):
        await make_items("A")
        assert await graph.list_prerequisites_of("A") == []

    @pytest.mark.asyncio
    async def test_list_dependents(self, graph, make_items):
        await make_items("A", "B", "C")
        await graph.add_edge("B", "A")
        await graph.add_edge("C", "A")

        assert await graph.list_dependents("A") == ["B", "C"]
        assert await graph.list_dependents("B") == []

    @pytest.mark.asyncio
    async def test_self_reference_rejected(self, graph, make_items):
        await make_items("A")
        with pytest.raises(SelfReferenceRejected):
            await graph.add_edge("A", "A")
        assert await graph.edges() == []

    @pytest.mark.asyncio
    async def test_unknown_item_rejected(self, graph, make_items):
        await make_items("A")
        with pytest.raises(ItemNotFound) as exc_info:
            await graph.add_edge("A", "ghost")
        assert exc_info.value.item_id == "ghost"

        with pytest.raises(ItemNotFound):
            await graph.add_edge("ghost", "A")

    @pytest.mark.asyncio
    async def test_kind_mismatch_is_not_found(self, graph, make_items):
        await make_items("C1")
        await make_items("L1", kind=ItemKind.LESSON)

        with pytest.raises(ItemNotFound):
            await graph.add_edge("C1", "L1", kind=ItemKind.COURSE)

    @pytest.mark.asyncio
    async def test_duplicate_edge_rejected(self, graph, make_items):
        await make_items("A", "B")
        await graph.add_edge("A", "B")

        with pytest.raises(EdgeAlreadyExists):
            await graph.add_edge("A", "B")
        assert await graph.list_prerequisites_of("A") == ["B"]

    @pytest.mark.asyncio
    async def test_two_node_cycle_rejected(self, graph, make_items):
        await make_items("A", "B")
        await graph.add_edge("A", "B")

        with pytest.raises(CycleRejected):
            await graph.add_edge("B", "A")
        assert await graph.edges() == [("A", "B")]

    @pytest.mark.asyncio
    async def test_long_cycle_rejected(self, graph, make_items):
        await make_items("A", "B", "C", "D")
        await graph.add_edge("A", "B")
        await graph.add_edge("B", "C")
        await graph.add_edge("C", "D")

        with pytest.raises(CycleRejected):
            await graph.add_edge("D", "A")
        assert len(await graph.edges()) == 3

    @pytest.mark.asyncio
    async def test_diamond_allowed(self, graph, make_items):
        await make_items("A", "B", "C", "D")
        await graph.add_edge("B", "A")
        await graph.add_edge("C", "A")
        await graph.add_edge("D", "B")
        await graph.add_edge("D", "C")

        assert await graph.list_prerequisites_of("D") == ["B", "C"]

    @pytest.mark.asyncio
    async def test_rejected_cycle_is_audited(self, graph, make_items, db_session):
        await make_items("A", "B")
        await graph.add_edge("A", "B")

        with pytest.raises(CycleRejected):
            await graph.add_edge("B", "A", actor_id="author-1")

        result = await db_session.execute(
            select(EventLog).where(EventLog.event_type == EventType.PREREQUISITE_REJECTED.value)
        )
        rejected = result.scalars().all()
        assert len(rejected) == 1
        assert rejected[0].entity_id == "B"
        assert rejected[0].actor_id == "author-1"
        assert rejected[0].payload["prerequisite_id"] == "A"

    @pytest.mark.asyncio
    async def test_reverse_of_added_edge_would_cycle(self, graph, make_items):
        await make_items("A", "B", "C")
        await graph.add_edge("A", "B")
        await graph.add_edge("B", "C")

        edges = await graph.edges()
        for item_id, prerequisite_id in edges:
            assert would_create_cycle(prerequisite_id, item_id, edges) is True

    @pytest.mark.asyncio
    async def test_rejected_cycle_discards_other_pending_changes(
        self, graph, registry, make_items, session_maker
    ):
        """Only the rejection audit row survives a cycle rejection."""
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        await registry.create_item("Unsaved", ItemKind.COURSE, item_id="pending")

        with pytest.raises(CycleRejected):
            await graph.add_edge("B", "A")

        async with session_maker() as other:
            assert await ItemRegistry(other).get_item("pending") is None
            rejected = await EventStore(other).count_events(
                entity_id="B", event_type=EventType.PREREQUISITE_REJECTED
            )
        assert rejected == 1

    @pytest.mark.asyncio
    async def test_added_edge_is_audited(self, graph, make_items, db_session):
        await make_items("A", "B")
        await graph.add_edge("A", "B", actor_id="author-1")

        history = await EventStore(db_session).get_entity_history("item", "A")
        assert EventType.PREREQUISITE_ADDED.value in [e.event_type for e in history]


class TestRemoveEdge:

    @pytest.mark.asyncio
    async def test_remove_edge(self, graph, make_items):
        await make_items("A", "B", "C")
        await graph.add_edge("A", "B")
        await graph.add_edge("A", "C")

        await graph.remove_edge("A", "B")

        assert await graph.list_prerequisites_of("A") == ["C"]

    @pytest.mark.asyncio
    async def test_remove_missing_edge(self, graph, make_items):
        await make_items("A", "B")
        with pytest.raises(EdgeNotFound):
            await graph.remove_edge("A", "B")

    @pytest.mark.asyncio
    async def test_removed_edge_can_be_readded_in_reverse(self, graph, make_items):
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        await graph.remove_edge("A", "B")

        await graph.add_edge("B", "A")
        assert await graph.edges() == [("B", "A")]


class TestInvalidation:
    """Invalidation events after committed mutations."""

    @pytest.mark.asyncio
    async def test_add_invalidates_item_and_transitive_dependents(
        self, graph, make_items, published
    ):
        await make_items("A", "B", "C", "D")
        await graph.add_edge("B", "A")
        await graph.add_edge("C", "B")
        published.clear()

        await graph.add_edge("A", "D")

        assert len(published) == 1
        event = published[0]
        assert event.reason == InvalidationReason.PREREQUISITE_ADDED
        assert event.trigger == ("A", "D")
        assert event.item_ids == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_remove_invalidates(self, graph, make_items, published):
        await make_items("A", "B", "C")
        await graph.add_edge("B", "A")
        await graph.add_edge("C", "B")
        published.clear()

        await graph.remove_edge("B", "A")

        assert [e.item_ids for e in published] == [["B", "C"]]
        assert published[0].reason == InvalidationReason.PREREQUISITE_REMOVED

    @pytest.mark.asyncio
    async def test_rejected_mutation_publishes_nothing(self, graph, make_items, published):
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        published.clear()

        with pytest.raises(CycleRejected):
            await graph.add_edge("B", "A")
        with pytest.raises(EdgeAlreadyExists):
            await graph.add_edge("A", "B")
        with pytest.raises(SelfReferenceRejected):
            await graph.add_edge("A", "A")

        assert published == []

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_undo_commit(self, graph, bus, make_items):
        def broken(event):
            raise RuntimeError("cache down")

        bus.subscribe(broken)
        await make_items("A", "B")

        await graph.add_edge("A", "B")

        assert await graph.has_edge("A", "B")

    @pytest.mark.asyncio
    async def test_collect_dependents_excludes_self(self, graph, make_items):
        await make_items("A", "B", "C", "D")
        await graph.add_edge("B", "A")
        await graph.add_edge("C", "A")
        await graph.add_edge("D", "B")
        await graph.add_edge("D", "C")

        assert await graph.collect_dependents("A") == ["B", "C", "D"]
        assert await graph.collect_dependents("D") == []


class TestDetachItem:

    @pytest.mark.asyncio
    async def test_detach_removes_edges_both_ways(self, graph, registry, make_items, published):
        await make_items("A", "B", "C")
        await graph.add_edge("B", "A")
        await graph.add_edge("C", "B")
        published.clear()

        info = await graph.detach_item("B")

        assert info.id == "B"
        assert await registry.get_item("B") is None
        assert await graph.edges() == []
        assert published[0].reason == InvalidationReason.ITEM_DELETED
        assert published[0].item_ids == ["B", "C"]

    @pytest.mark.asyncio
    async def test_detach_unknown_item(self, graph):
        with pytest.raises(ItemNotFound):
            await graph.detach_item("ghost")


class TestConcurrentWriters:

    @pytest.mark.asyncio
    async def test_opposite_edges_cannot_both_commit(self, session_maker, make_items):
        """Two writers race X->Y against Y->X; exactly one wins."""
        await make_items("X", "Y")
        bus = InvalidationBus()

        async def add(item_id, prerequisite_id):
            async with session_maker() as session:
                store = PrerequisiteGraphStore(session, bus=bus)
                await store.add_edge(item_id, prerequisite_id)

        results = await asyncio.gather(
            add("X", "Y"),
            add("Y", "X"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], CycleRejected)

        async with session_maker() as session:
            edges = await PrerequisiteGraphStore(session, bus=bus).edges()
        assert len(edges) == 1


class TestAcyclicity:

    @pytest.mark.asyncio
    async def test_random_mutations_keep_graph_acyclic(self, graph, make_items):
        """Whatever the sequence of attempted edges, accepted edges never form a cycle."""
        rng = random.Random(20261018)
        nodes = [f"N{i}" for i in range(8)]
        await make_items(*nodes)

        accepted = 0
        for _ in range(60):
            item_id, prerequisite_id = rng.choice(nodes), rng.choice(nodes)
            try:
                await graph.add_edge(item_id, prerequisite_id)
                accepted += 1
            except (SelfReferenceRejected, EdgeAlreadyExists, CycleRejected):
                pass

        edges = await graph.edges()
        assert len(edges) == accepted
        for item_id, prerequisite_id in edges:
            # An edge on a cycle would let the prerequisite reach back to its item
            assert find_requirement_path(prerequisite_id, item_id, edges) is None
