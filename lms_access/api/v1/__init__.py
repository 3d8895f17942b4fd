"""
API v1 routes.
"""

from fastapi import APIRouter

from lms_access.api.v1 import completions, items, prerequisites
from lms_access.schemas.common import ErrorResponse

router = APIRouter()

_not_found = {404: {"model": ErrorResponse}}
_graph_errors = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse, "description": "Completion tracker unavailable"},
}

router.include_router(items.router, prefix="/items", tags=["Items"], responses=_not_found)
router.include_router(completions.router, prefix="/learners", tags=["Completions"])
# Catch-all /{collection}/... patterns last
router.include_router(prerequisites.router, tags=["Prerequisites"], responses=_graph_errors)
