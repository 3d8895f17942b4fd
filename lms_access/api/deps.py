"""
FastAPI dependencies for database sessions and the access engine services.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from lms_access.config import Settings, get_settings
from lms_access.database import get_db
from lms_access.engines.access.access_evaluator import AccessEvaluator
from lms_access.engines.access.completion_tracker import (
    CompletionTracker,
    DatabaseCompletionTracker,
    HttpCompletionTracker,
)
from lms_access.engines.access.graph_store import PrerequisiteGraphStore
from lms_access.engines.access.item_registry import ItemRegistry
from lms_access.kernel.events.invalidation import InvalidationBus, get_invalidation_bus


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_registry(db: DbSession) -> ItemRegistry:
    return ItemRegistry(db)


def get_graph_store(
    db: DbSession,
    bus: Annotated[InvalidationBus, Depends(get_invalidation_bus)],
) -> PrerequisiteGraphStore:
    return PrerequisiteGraphStore(db, bus=bus)


def get_database_tracker(db: DbSession) -> DatabaseCompletionTracker:
    return DatabaseCompletionTracker(db)


async def get_completion_tracker(
    request: Request,
    db: DbSession,
    settings: AppSettings,
) -> AsyncGenerator[CompletionTracker, None]:
    """Remote progress service if configured, else the local completion table."""
    if not settings.completion_tracker_url:
        yield DatabaseCompletionTracker(db)
        return

    # Shared client opened in the app lifespan
    tracker = HttpCompletionTracker(
        settings.completion_tracker_url,
        timeout_seconds=settings.completion_tracker_timeout_seconds,
        client=getattr(request.app.state, "http_client", None),
    )
    try:
        yield tracker
    finally:
        await tracker.aclose()


Registry = Annotated[ItemRegistry, Depends(get_registry)]
GraphStore = Annotated[PrerequisiteGraphStore, Depends(get_graph_store)]
DatabaseTracker = Annotated[DatabaseCompletionTracker, Depends(get_database_tracker)]
Tracker = Annotated[CompletionTracker, Depends(get_completion_tracker)]


def get_access_evaluator(graph: GraphStore, registry: Registry, completions: Tracker) -> AccessEvaluator:
    return AccessEvaluator(graph, registry, completions)


Evaluator = Annotated[AccessEvaluator, Depends(get_access_evaluator)]


def get_actor_id(
    x_actor_id: Annotated[Optional[str], Header(max_length=64)] = None,
) -> Optional[str]:
    """Who is making an authoring change (recorded in the audit log)."""
    return x_actor_id


ActorId = Annotated[Optional[str], Depends(get_actor_id)]
