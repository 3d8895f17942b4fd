"""
Learner completion endpoints (local completion tracker).
"""

from fastapi import APIRouter, status

from lms_access.api.deps import DatabaseTracker
from lms_access.schemas.common import SuccessResponse
from lms_access.schemas.completion import CompletionCreate, CompletionListResponse, CompletionResponse

router = APIRouter()


@router.post(
    "/{learner_id}/completions",
    response_model=CompletionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_completion(learner_id: str, body: CompletionCreate, tracker: DatabaseTracker):
    """Record that a learner completed an item. Idempotent."""
    record = await tracker.mark_completed(learner_id, body.item_id, completed_at=body.completed_at)
    return CompletionResponse(**record.model_dump())


@router.get("/{learner_id}/completions", response_model=CompletionListResponse)
async def list_completions(learner_id: str, tracker: DatabaseTracker):
    records = await tracker.list_completed(learner_id)
    return CompletionListResponse(
        learner_id=learner_id,
        completions=[CompletionResponse(**r.model_dump()) for r in records],
    )


@router.delete("/{learner_id}/completions/{item_id}", response_model=SuccessResponse)
async def revoke_completion(learner_id: str, item_id: str, tracker: DatabaseTracker):
    removed = await tracker.revoke_completion(learner_id, item_id)
    return SuccessResponse(
        message="Completion revoked" if removed else "No completion recorded",
        data={"learner_id": learner_id, "item_id": item_id, "removed": removed},
    )
