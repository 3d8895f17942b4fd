"""
Pydantic schemas for item (course / lesson) endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from lms_access.kernel.models.item import ItemKind


class ItemCreate(BaseModel):
    """Register a course or lesson."""

    id: Optional[str] = Field(None, min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=500)
    kind: ItemKind


class ItemUpdate(BaseModel):
    """Rename an item."""

    title: str = Field(..., min_length=1, max_length=500)


class ItemResponse(BaseModel):
    """Item as returned by the API."""

    id: str
    title: str
    kind: ItemKind


class ItemListResponse(BaseModel):
    items: List[ItemResponse]
    total: int
