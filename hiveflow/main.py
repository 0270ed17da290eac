"""FastAPI application entry point.

This module defines the FastAPI application with CORS middleware,
lifespan management, and API routing configuration.

Lifespan:
    Startup creates the schema, builds the service container, loads cron
    schedules from active workflows and starts the scheduler. Shutdown
    stops the scheduler, kills running tasks and closes HTTP clients.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hiveflow import __version__
from hiveflow.api import router as api_router
from hiveflow.api import webhook_router
from hiveflow.core.config import Settings, settings
from hiveflow.core.logging import get_logger, setup_logging
from hiveflow.db.session import async_session, engine, init_db
from hiveflow.services.container import build_services

logger = get_logger(__name__)


def create_app(
    app_settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    db_engine: AsyncEngine | None = None,
    *,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the application.

    Tests pass their own settings and database and turn off
    ``configure_logging`` to keep pytest's log capture. The module-level
    ``app`` uses the process settings and the default session factory.
    """
    app_settings = app_settings or settings
    session_factory = session_factory or async_session
    db_engine = db_engine or engine

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        if configure_logging:
            setup_logging(
                log_level=app_settings.LOG_LEVEL,
                log_file=app_settings.LOG_FILE,
                service_name=app_settings.PROJECT_NAME,
                enable_json=app_settings.LOG_JSON_FORMAT,
                colored_console=app_settings.DEBUG,
            )

        logger.info(
            f"Starting {app_settings.PROJECT_NAME}",
            extra={
                "context": {
                    "action": "application_startup",
                    "version": __version__,
                    "debug": app_settings.DEBUG,
                    "log_level": app_settings.LOG_LEVEL,
                }
            },
        )

        await init_db(db_engine)
        services = build_services(app_settings, session_factory)
        app.state.services = services
        await services.scheduler.initialize()
        services.scheduler.start()

        logger.info(
            "Application startup completed",
            extra={"context": {"action": "application_startup", "status": "success"}},
        )

        yield

        logger.info(
            f"Shutting down {app_settings.PROJECT_NAME}",
            extra={"context": {"action": "application_shutdown"}},
        )
        await services.aclose()
        logger.info(
            "Application shutdown completed",
            extra={"context": {"action": "application_shutdown", "status": "success"}},
        )

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        description="Workflow graph validation, scheduling and execution engine",
        version=__version__,
        openapi_url=f"{app_settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=app_settings.API_V1_PREFIX)
    app.include_router(webhook_router, tags=["Webhooks"])

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        return {
            "name": app_settings.PROJECT_NAME,
            "version": __version__,
            "docs": "/docs",
        }

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


app = create_app()
