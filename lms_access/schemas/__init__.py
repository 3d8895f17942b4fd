"""
Pydantic schemas for API request/response validation.
"""

from lms_access.schemas.common import ErrorResponse, HealthResponse, SuccessResponse
from lms_access.schemas.item import ItemCreate, ItemListResponse, ItemResponse, ItemUpdate
from lms_access.schemas.access import (
    AccessCheckResponse,
    DependentListResponse,
    MissingPrerequisiteResponse,
    PrerequisiteAddRequest,
    PrerequisiteListResponse,
)
from lms_access.schemas.completion import (
    CompletionCreate,
    CompletionListResponse,
    CompletionResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "SuccessResponse",
    # Items
    "ItemCreate",
    "ItemListResponse",
    "ItemResponse",
    "ItemUpdate",
    # Prerequisites & access
    "AccessCheckResponse",
    "DependentListResponse",
    "MissingPrerequisiteResponse",
    "PrerequisiteAddRequest",
    "PrerequisiteListResponse",
    # Completions
    "CompletionCreate",
    "CompletionListResponse",
    "CompletionResponse",
]
