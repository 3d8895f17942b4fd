"""
Unit tests for the access evaluator.

Covers the one-hop policy, missing prerequisite ordering and titles, fail
closed on unresolvable prerequisites, and tracker outages.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lms_access.engines.access.access_evaluator import AccessEvaluator, MissingPrerequisite
from lms_access.engines.access.item_registry import ItemInfo
from lms_access.kernel.errors import DependencyUnavailable, ItemNotFound
from lms_access.kernel.models import ItemKind


class TestCheckAccess:

    @pytest.mark.asyncio
    async def test_no_prerequisites_grants_access(self, evaluator, make_items):
        await make_items("A")

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is True
        assert decision.missing_prerequisites == []

    @pytest.mark.asyncio
    async def test_missing_prerequisite_listed_with_title(self, evaluator, graph, make_items):
        await make_items("A", "B")
        await graph.add_edge("A", "B")

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is False
        assert decision.missing_prerequisites == [MissingPrerequisite(id="B", title="Title B")]

    @pytest.mark.asyncio
    async def test_completed_prerequisite_grants_access(self, evaluator, graph, make_items, complete):
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        await complete("learner-1", "B")

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is True
        assert decision.missing_prerequisites == []

    @pytest.mark.asyncio
    async def test_partial_completion_lists_only_missing_in_edge_order(
        self, evaluator, graph, make_items, complete
    ):
        await make_items("A", "X", "Y", "Z")
        await graph.add_edge("A", "Z")
        await graph.add_edge("A", "X")
        await graph.add_edge("A", "Y")
        await complete("learner-1", "X")

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is False
        assert [m.id for m in decision.missing_prerequisites] == ["Z", "Y"]

    @pytest.mark.asyncio
    async def test_nothing_completed_lists_every_prerequisite_in_edge_order(
        self, evaluator, graph, make_items
    ):
        await make_items("A", "X", "Y", "Z")
        await graph.add_edge("A", "Y")
        await graph.add_edge("A", "Z")
        await graph.add_edge("A", "X")

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is False
        assert [(m.id, m.title) for m in decision.missing_prerequisites] == [
            ("Y", "Title Y"),
            ("Z", "Title Z"),
            ("X", "Title X"),
        ]

    @pytest.mark.asyncio
    async def test_course_with_two_prerequisites_one_completed(
        self, evaluator, graph, make_items, complete
    ):
        """C requires A and B; the learner finished A, so only B is missing."""
        await make_items("A", "B", "C")
        await graph.add_edge("C", "A")
        await graph.add_edge("C", "B")
        await complete("learner-1", "A")

        decision = await evaluator.check_access("learner-1", "C")

        assert decision.has_access is False
        assert decision.missing_prerequisites == [MissingPrerequisite(id="B", title="Title B")]

    @pytest.mark.asyncio
    async def test_only_direct_prerequisites_are_checked(self, evaluator, graph, make_items, complete):
        """A requires B requires C; completing B alone opens A."""
        await make_items("A", "B", "C")
        await graph.add_edge("A", "B")
        await graph.add_edge("B", "C")
        await complete("learner-1", "B")

        assert (await evaluator.check_access("learner-1", "A")).has_access is True
        assert (await evaluator.check_access("learner-1", "B")).has_access is False

    @pytest.mark.asyncio
    async def test_completions_are_per_learner(self, evaluator, graph, make_items, complete):
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        await complete("learner-1", "B")

        assert (await evaluator.check_access("learner-1", "A")).has_access is True
        assert (await evaluator.check_access("learner-2", "A")).has_access is False

    @pytest.mark.asyncio
    async def test_removed_edge_reopens_item(self, evaluator, graph, make_items):
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        assert (await evaluator.check_access("learner-1", "A")).has_access is False

        await graph.remove_edge("A", "B")

        assert (await evaluator.check_access("learner-1", "A")).has_access is True

    @pytest.mark.asyncio
    async def test_unknown_target_raises(self, evaluator):
        with pytest.raises(ItemNotFound):
            await evaluator.check_access("learner-1", "ghost")

    @pytest.mark.asyncio
    async def test_kind_mismatch_raises(self, evaluator, make_items):
        await make_items("L1", kind=ItemKind.LESSON)

        with pytest.raises(ItemNotFound):
            await evaluator.check_access("learner-1", "L1", kind=ItemKind.COURSE)
        decision = await evaluator.check_access("learner-1", "L1", kind=ItemKind.LESSON)
        assert decision.has_access is True

    @pytest.mark.asyncio
    async def test_tracker_outage_is_not_a_denial(self, graph, registry, make_items):
        await make_items("A", "B")
        await graph.add_edge("A", "B")
        tracker = MagicMock()
        tracker.is_completed = AsyncMock(side_effect=DependencyUnavailable("completion tracker"))

        evaluator = AccessEvaluator(graph, registry, tracker)

        with pytest.raises(DependencyUnavailable):
            await evaluator.check_access("learner-1", "A")

    @pytest.mark.asyncio
    async def test_tracker_not_called_without_prerequisites(self, graph, registry, make_items):
        await make_items("A")
        tracker = MagicMock()
        tracker.is_completed = AsyncMock(side_effect=DependencyUnavailable("completion tracker"))

        decision = await AccessEvaluator(graph, registry, tracker).check_access("learner-1", "A")

        assert decision.has_access is True
        tracker.is_completed.assert_not_awaited()


class TestDanglingPrerequisites:
    """Edges whose prerequisite no longer resolves in the registry."""

    def _evaluator(self, prerequisite_ids, known, completed):
        graph = MagicMock()
        graph.list_prerequisites_of = AsyncMock(return_value=prerequisite_ids)
        registry = MagicMock()
        registry.require_item = AsyncMock(
            return_value=ItemInfo(id="A", title="Course A", kind=ItemKind.COURSE)
        )
        registry.get_items = AsyncMock(return_value=known)
        tracker = MagicMock()
        tracker.is_completed = AsyncMock(side_effect=lambda learner, item: item in completed)
        return AccessEvaluator(graph, registry, tracker), tracker

    @pytest.mark.asyncio
    async def test_unresolved_prerequisite_is_missing_without_title(self):
        evaluator, tracker = self._evaluator(
            ["B", "gone"],
            {"B": ItemInfo(id="B", title="Course B", kind=ItemKind.COURSE)},
            completed={"B", "gone"},
        )

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is False
        assert decision.missing_prerequisites == [MissingPrerequisite(id="gone", title=None)]

    @pytest.mark.asyncio
    async def test_unresolved_prerequisite_never_consults_tracker(self):
        evaluator, tracker = self._evaluator(["gone"], {}, completed={"gone"})

        decision = await evaluator.check_access("learner-1", "A")

        assert decision.has_access is False
        tracker.is_completed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_order_kept_with_mixed_resolution(self):
        evaluator, _ = self._evaluator(
            ["B", "gone", "C"],
            {
                "B": ItemInfo(id="B", title="Course B", kind=ItemKind.COURSE),
                "C": ItemInfo(id="C", title="Course C", kind=ItemKind.COURSE),
            },
            completed=set(),
        )

        decision = await evaluator.check_access("learner-1", "A")

        assert [(m.id, m.title) for m in decision.missing_prerequisites] == [
            ("B", "Course B"),
            ("gone", None),
            ("C", "Course C"),
        ]
