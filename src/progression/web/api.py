"""FastAPI application factory.

Main entry point for the Progression Engine Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from progression import __version__
from progression.core.errors import (
    AssessmentAttemptsExhausted,
    ConcurrentUpdateConflict,
    ContentNotFound,
    ContentUnpublished,
    CyclicPrerequisiteGraph,
    InstructorBlocked,
    InvalidStateTransition,
    NotEnrolled,
    PersistenceError,
    PrerequisitesNotMet,
    ProgressionError,
)
from progression.core.progression_engine import ProgressionControlEngine
from progression.db.engine_factory import build_engine
from progression.web.routes import health_router, progression_router

logger = structlog.get_logger(__name__)

# Domain error -> HTTP status
ERROR_STATUS: dict[type[ProgressionError], int] = {
    ContentNotFound: status.HTTP_404_NOT_FOUND,
    NotEnrolled: status.HTTP_403_FORBIDDEN,
    ContentUnpublished: status.HTTP_403_FORBIDDEN,
    PrerequisitesNotMet: status.HTTP_403_FORBIDDEN,
    InstructorBlocked: status.HTTP_403_FORBIDDEN,
    AssessmentAttemptsExhausted: status.HTTP_409_CONFLICT,
    InvalidStateTransition: status.HTTP_409_CONFLICT,
    CyclicPrerequisiteGraph: status.HTTP_409_CONFLICT,
    ConcurrentUpdateConflict: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    if getattr(app.state, "engine", None) is None:
        app.state.engine = build_engine()
    logger.info("api_startup", version=__version__)
    yield
    # Shutdown (nothing to do for now)


async def progression_error_handler(request: Request, exc: ProgressionError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, mapped in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = mapped
            break

    log = logger.error if status_code >= 500 else logger.info
    log("api_error", path=request.url.path, code=exc.code, error=str(exc))

    content = {"code": exc.code, "detail": str(exc)}
    if isinstance(exc, CyclicPrerequisiteGraph):
        content["cycle"] = exc.cycle
    return JSONResponse(status_code=status_code, content=content)


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": "invalid_request", "detail": str(exc)},
    )


def create_app(engine: ProgressionControlEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Engine to serve; built from the app config at startup when None

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Progression Engine API",
        description="Prerequisite-gated access and progress tracking",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.engine = engine

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ProgressionError, progression_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(progression_router)

    return app


# Default app instance for uvicorn
app = create_app()
