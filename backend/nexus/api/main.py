"""
Nexus PM - FastAPI Application
==============================

Main application factory with all routers and middleware.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nexus.api import auth, drafts, generation, notifications, projects, team, workspace
from nexus.core.config import settings
from nexus.core.database import AsyncSessionLocal, close_db, init_db
from nexus.core.exceptions import (
    AuthenticationFailed,
    CompletionNotPending,
    DuplicateEmail,
    GenerationFailed,
    NexusError,
    NotFound,
    PersistenceError,
    StorageQuotaExceeded,
    ValidationFailed,
)
from nexus.core.planning.ai_generator import PlanGenerator
from nexus.core.planning.workspace import Workspace
from nexus.core.schemas import ErrorResponse, HealthResponse
from nexus.core.storage import SqlKeyValueStore, StateRepository

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Most specific first
ERROR_STATUS: list[tuple[type[NexusError], int]] = [
    (DuplicateEmail, status.HTTP_409_CONFLICT),
    (ValidationFailed, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AuthenticationFailed, status.HTTP_401_UNAUTHORIZED),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (CompletionNotPending, status.HTTP_409_CONFLICT),
    (StorageQuotaExceeded, status.HTTP_507_INSUFFICIENT_STORAGE),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GenerationFailed, status.HTTP_502_BAD_GATEWAY),
]


def status_for(exc: NexusError) -> int:
    return next(
        (code for exc_type, code in ERROR_STATUS if isinstance(exc, exc_type)),
        status.HTTP_400_BAD_REQUEST,
    )


# ==========================================================================
# Lifespan
# ==========================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Startup:
    - Initialize database tables
    - Load the workspace (starts reminders if a session exists)

    Shutdown:
    - Stop reminders, close HTTP clients and database connections
    """
    logger.info("Starting Nexus PM", version=settings.APP_VERSION)

    await init_db()
    logger.info("Database initialized")

    ws = Workspace(StateRepository(SqlKeyValueStore(AsyncSessionLocal)))
    await ws.load()
    app.state.workspace = ws
    app.state.generator = PlanGenerator()

    yield

    logger.info("Shutting down Nexus PM")
    await ws.shutdown()
    await app.state.generator.aclose()
    await close_db()
    logger.info("Database connections closed")


# ==========================================================================
# App Factory
# ==========================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Nexus PM - AI-assisted project management",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # ==========================================================================
    # Middleware
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(NexusError)
    async def nexus_exception_handler(request: Request, exc: NexusError) -> JSONResponse:
        """Map domain errors to HTTP responses."""
        status_code = status_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log("request_failed", path=request.url.path, code=exc.code, status_code=status_code)
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message or None,
                code=exc.code,
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )

        if settings.is_development:
            detail = str(exc)
        else:
            detail = "An unexpected error occurred"

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal Server Error",
                detail=detail,
                code="INTERNAL_ERROR",
            ).model_dump(),
        )

    # ==========================================================================
    # Routers
    # ==========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    async def health_check(request: Request) -> HealthResponse:
        """
        Check application health.

        Returns status of:
        - Application
        - Key-value store
        - Reminder scheduler
        """
        ws: Workspace = request.app.state.workspace
        try:
            await ws.repository.store.get("nexus_health")
            database = "connected"
        except PersistenceError:
            database = "unavailable"

        return HealthResponse(
            status="healthy" if database == "connected" else "degraded",
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            database=database,
            reminders="running" if ws.scheduler.running else "stopped",
        )

    for module in (auth, projects, generation, team, notifications, drafts, workspace):
        app.include_router(module.router, prefix=settings.API_V1_PREFIX)

    # ==========================================================================
    # Root Endpoint
    # ==========================================================================

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        """Root endpoint with API info."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health",
            "api": settings.API_V1_PREFIX,
        }

    return app


# ==========================================================================
# Application Instance
# ==========================================================================

app = create_app()


# ==========================================================================
# Development Server
# ==========================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nexus.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level="info",
    )
