"""
Pytest fixtures for access control tests.

Each test gets its own SQLite file so sessions opened by concurrent writers
(and by the API under test) all see the same database.
"""

import os
import tempfile
from typing import AsyncGenerator, Awaitable, Callable, List

# Point the app at a throwaway database before anything builds the engine
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp.name}"
os.environ["COMPLETION_TRACKER_URL"] = ""

from lms_access.config import get_settings

get_settings.cache_clear()

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from lms_access.database import build_engine, build_session_maker
from lms_access.engines.access.access_evaluator import AccessEvaluator
from lms_access.engines.access.completion_tracker import DatabaseCompletionTracker
from lms_access.engines.access.graph_store import PrerequisiteGraphStore
from lms_access.engines.access.item_registry import ItemRegistry
from lms_access.kernel.events.invalidation import AccessInvalidated, InvalidationBus
from lms_access.kernel.models import Base, ItemKind


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite database with all tables."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'access.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def bus() -> InvalidationBus:
    return InvalidationBus()


@pytest.fixture
def published(bus) -> List[AccessInvalidated]:
    """Every invalidation event published on the test bus."""
    events: List[AccessInvalidated] = []
    bus.subscribe(events.append)
    return events


@pytest.fixture
def registry(db_session) -> ItemRegistry:
    return ItemRegistry(db_session)


@pytest.fixture
def graph(db_session, bus) -> PrerequisiteGraphStore:
    return PrerequisiteGraphStore(db_session, bus=bus)


@pytest.fixture
def tracker(db_session) -> DatabaseCompletionTracker:
    return DatabaseCompletionTracker(db_session)


@pytest.fixture
def evaluator(graph, registry, tracker) -> AccessEvaluator:
    return AccessEvaluator(graph, registry, tracker)


@pytest.fixture
def make_items(db_session, registry) -> Callable[..., Awaitable[None]]:
    """Register items by id (titled after their id) and commit."""

    async def _make(*item_ids: str, kind: ItemKind = ItemKind.COURSE) -> None:
        for item_id in item_ids:
            await registry.create_item(f"Title {item_id}", kind, item_id=item_id)
        await db_session.commit()

    return _make


@pytest.fixture
def complete(db_session, tracker) -> Callable[..., Awaitable[None]]:
    """Mark items completed for a learner and commit."""

    async def _complete(learner_id: str, *item_ids: str) -> None:
        for item_id in item_ids:
            await tracker.mark_completed(learner_id, item_id)
        await db_session.commit()

    return _complete
