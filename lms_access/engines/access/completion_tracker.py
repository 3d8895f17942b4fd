"""
Completion Tracker - the source of truth for "has this learner finished that item".

The access evaluator only needs is_completed(). Two implementations:
- DatabaseCompletionTracker reads the completion_records table and also offers
  the progress-side writes the host API exposes.
- HttpCompletionTracker asks a remote progress service.

Both turn infrastructure failures into DependencyUnavailable and never retry.
"""

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_access.kernel.errors import DependencyUnavailable
from lms_access.kernel.events.event_store import EventStore
from lms_access.kernel.models.completion import CompletionRecord as CompletionRecordRow
from lms_access.kernel.models.event_log import EventType
from lms_access.logging_config import get_logger

logger = get_logger(__name__)


class CompletionRecord(BaseModel):
    """A learner finished an item (Pydantic)."""

    learner_id: str
    item_id: str
    completed_at: datetime


def _to_record(row: CompletionRecordRow) -> CompletionRecord:
    return CompletionRecord(learner_id=row.learner_id, item_id=row.item_id, completed_at=row.completed_at)


@runtime_checkable
class CompletionTracker(Protocol):
    """What the access evaluator needs from the progress service."""

    async def is_completed(self, learner_id: str, item_id: str) -> bool:
        ...


class DatabaseCompletionTracker:
    """Completion records stored next to the prerequisite graph."""

    DEPENDENCY_NAME = "completion tracker database"

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def is_completed(self, learner_id: str, item_id: str) -> bool:
        query = select(CompletionRecordRow.id).where(
            CompletionRecordRow.learner_id == learner_id,
            CompletionRecordRow.item_id == item_id,
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            logger.warning(
                "Completion lookup failed",
                extra={"learner_id": learner_id, "item_id": item_id, "error": str(exc)},
            )
            raise DependencyUnavailable(self.DEPENDENCY_NAME, str(exc)) from exc
        return result.scalar_one_or_none() is not None

    async def list_completed(self, learner_id: str) -> List[CompletionRecord]:
        query = (
            select(CompletionRecordRow)
            .where(CompletionRecordRow.learner_id == learner_id)
            .order_by(CompletionRecordRow.completed_at, CompletionRecordRow.id)
        )
        result = await self.session.execute(query)
        return [_to_record(row) for row in result.scalars().all()]

    async def _get_row(self, learner_id: str, item_id: str) -> Optional[CompletionRecordRow]:
        query = select(CompletionRecordRow).where(
            CompletionRecordRow.learner_id == learner_id,
            CompletionRecordRow.item_id == item_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def mark_completed(
        self,
        learner_id: str,
        item_id: str,
        completed_at: Optional[datetime] = None,
    ) -> CompletionRecord:
        """
        Record a completion. Completing an item twice keeps the first record.

        If a concurrent writer records the same completion first, the session
        is rolled back and the winner's record is returned.
        """
        row = await self._get_row(learner_id, item_id)
        if row is None:
            row = CompletionRecordRow(learner_id=learner_id, item_id=item_id)
            if completed_at is not None:
                row.completed_at = completed_at
            self.session.add(row)
            try:
                await self.session.flush()
            except IntegrityError:
                await self.session.rollback()
                existing = await self._get_row(learner_id, item_id)
                if existing is None:
                    raise
                logger.info(
                    "Completion already recorded by a concurrent request",
                    extra={"learner_id": learner_id, "item_id": item_id},
                )
                return _to_record(existing)
            await self.session.refresh(row)

            await self.event_store.log(
                event_type=EventType.COMPLETION_RECORDED,
                entity_type="learner",
                entity_id=learner_id,
                actor_id=learner_id,
                payload={"item_id": item_id, "completed_at": row.completed_at},
            )
        return _to_record(row)

    async def revoke_completion(self, learner_id: str, item_id: str) -> bool:
        """Remove a completion. Returns False if there was none."""
        row = await self._get_row(learner_id, item_id)
        if row is None:
            return False

        await self.session.delete(row)
        await self.session.flush()
        await self.event_store.log(
            event_type=EventType.COMPLETION_REVOKED,
            entity_type="learner",
            entity_id=learner_id,
            payload={"item_id": item_id},
        )
        return True


def _path_segment(value: str) -> str:
    """Percent-encode an id so it stays a single path segment."""
    segment = quote(value, safe="")
    if segment in (".", ".."):
        # quote() leaves dots alone; a bare dot segment would be resolved away
        segment = segment.replace(".", "%2E")
    return segment


class HttpCompletionTracker:
    """
    Completion lookups against a remote progress service.

    GET {base_url}/learners/{learner_id}/completions/{item_id}
        200 {"completed": bool}  -> that value
        404                      -> not completed
        anything else / timeout  -> DependencyUnavailable

    Pass the application's shared client; without one the tracker opens its
    own and aclose() releases it.
    """

    DEPENDENCY_NAME = "completion tracker service"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout_seconds)

    def completion_url(self, learner_id: str, item_id: str) -> str:
        return (
            f"{self.base_url}/learners/{_path_segment(learner_id)}"
            f"/completions/{_path_segment(item_id)}"
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def is_completed(self, learner_id: str, item_id: str) -> bool:
        url = self.completion_url(learner_id, item_id)
        try:
            response = await self._client.get(url, timeout=self.timeout_seconds)
        except httpx.HTTPError as exc:
            logger.warning(
                "Completion service request failed",
                extra={"learner_id": learner_id, "item_id": item_id, "error": repr(exc)},
            )
            raise DependencyUnavailable(self.DEPENDENCY_NAME, type(exc).__name__) from exc

        if response.status_code == 404:
            return False
        if response.status_code != 200:
            logger.warning(
                "Completion service returned an error",
                extra={"learner_id": learner_id, "item_id": item_id, "status_code": response.status_code},
            )
            raise DependencyUnavailable(self.DEPENDENCY_NAME, f"HTTP {response.status_code}")

        try:
            completed = response.json()["completed"]
        except (ValueError, KeyError, TypeError) as exc:
            raise DependencyUnavailable(self.DEPENDENCY_NAME, "malformed response") from exc
        if not isinstance(completed, bool):
            raise DependencyUnavailable(self.DEPENDENCY_NAME, "malformed response")
        return completed
