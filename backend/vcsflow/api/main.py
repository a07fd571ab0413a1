"""
VCSFlow - FastAPI Application
=============================

Main application factory with routers and middleware.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vcsflow.api import webhooks
from vcsflow.api.deps import DbSession, get_gitlab_client
from vcsflow.core.config import settings
from vcsflow.core.database import close_db, init_db
from vcsflow.core.schemas import ErrorResponse, HealthResponse

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


# ==========================================================================
# Lifespan
# ==========================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Startup: create tables.
    Shutdown: close the GitLab client and database connections.
    """
    logger.info("Starting VCSFlow", version=settings.APP_VERSION)

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down VCSFlow")
    await get_gitlab_client().close()
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
        description="Database schema migration pipelines from VCS push events",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

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
    async def health_check(db: DbSession) -> HealthResponse:
        """Check application and database health."""
        try:
            await db.execute(text("SELECT 1"))
            database = "connected"
        except SQLAlchemyError as e:
            logger.warning("health_database_unreachable", error=str(e))
            database = "unreachable"

        return HealthResponse(
            status="healthy" if database == "connected" else "degraded",
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            database=database,
        )

    app.include_router(webhooks.router)

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        """Root endpoint with API info."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health",
            "webhook": f"{settings.WEBHOOK_PREFIX}/gitlab/{{webhook_endpoint_id}}",
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
        "vcsflow.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level="info",
    )
