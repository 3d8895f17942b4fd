"""
LMS Access Control Service

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Type

import httpx
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lms_access.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from lms_access.api.v1 import router as api_v1_router
from lms_access.config import get_settings
from lms_access.database import close_db, init_db
from lms_access.kernel.errors import (
    AccessControlError,
    CycleRejected,
    DependencyUnavailable,
    EdgeAlreadyExists,
    EdgeNotFound,
    ItemAlreadyExists,
    ItemNotFound,
    SelfReferenceRejected,
)
from lms_access.logging_config import configure_logging, get_logger
from lms_access.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS: Dict[Type[AccessControlError], int] = {
    ItemNotFound: status.HTTP_404_NOT_FOUND,
    EdgeNotFound: status.HTTP_404_NOT_FOUND,
    ItemAlreadyExists: status.HTTP_409_CONFLICT,
    EdgeAlreadyExists: status.HTTP_409_CONFLICT,
    CycleRejected: status.HTTP_409_CONFLICT,
    SelfReferenceRejected: status.HTTP_400_BAD_REQUEST,
    DependencyUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: AccessControlError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info(
        "Database initialized",
        extra={"completion_tracker": "http" if settings.completion_tracker_url else "database"},
    )
    if settings.completion_tracker_url:
        # One connection pool for every completion lookup
        app.state.http_client = httpx.AsyncClient(timeout=settings.completion_tracker_timeout_seconds)

    yield

    logger.info("Shutting down...")
    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Prerequisite-gated access control for courses and lessons.

    ## Features

    - **Items**: Register courses and lessons
    - **Prerequisites**: Directed "requires" graph, kept acyclic at every write
    - **Access checks**: Has this learner completed every direct prerequisite?
    - **Completions**: Local completion records (or a remote progress service)

    ## Error semantics

    - A locked item is a 200 with `has_access: false`
    - An unreachable completion tracker is a 503 with code `dependency_unavailable`
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: CORS goes last so it wraps everything
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    headers = {}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
        content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(AccessControlError)
async def access_control_exception_handler(request: Request, exc: AccessControlError):
    """Typed engine errors -> HTTP status plus a machine-readable code."""
    status_code = status_for(exc)
    if isinstance(exc, DependencyUnavailable):
        logger.warning("Access decision unavailable: %s", exc.message)
    else:
        logger.info("Request rejected: %s", exc.message, extra={"code": exc.code})
    return _error_response(request, status_code, {"detail": exc.message, "code": exc.code})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, {"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"detail": "Validation error", "code": "validation_error", "errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__}
    else:
        content = {"detail": "Internal server error"}
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
        completion_tracker="http" if settings.completion_tracker_url else "database",
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lms_access.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
