"""
Pydantic schemas for prerequisite management and access checks.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from lms_access.schemas.item import ItemResponse


class PrerequisiteAddRequest(BaseModel):
    """Body for adding a prerequisite to a course or lesson."""

    prerequisite_id: str = Field(..., min_length=1, max_length=64)


class PrerequisiteListResponse(BaseModel):
    """Direct prerequisites in the order they were added."""

    item_id: str
    prerequisites: List[ItemResponse]


class DependentListResponse(BaseModel):
    """Items that require this one."""

    item_id: str
    dependents: List[ItemResponse]
    transitive: bool = False


class MissingPrerequisiteResponse(BaseModel):
    id: str
    title: Optional[str] = None


class AccessCheckResponse(BaseModel):
    """Whether the learner may open the item, and what is still missing."""

    has_access: bool
    missing_prerequisites: List[MissingPrerequisiteResponse]
