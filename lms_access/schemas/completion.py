"""
Pydantic schemas for learner completion endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CompletionCreate(BaseModel):
    """Record that a learner completed an item."""

    item_id: str = Field(..., min_length=1, max_length=64)
    completed_at: Optional[datetime] = None


class CompletionResponse(BaseModel):
    learner_id: str
    item_id: str
    completed_at: datetime


class CompletionListResponse(BaseModel):
    learner_id: str
    completions: List[CompletionResponse]
