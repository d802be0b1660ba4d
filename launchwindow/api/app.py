"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from launchwindow.api.dependencies import get_launch_service
from launchwindow.api.routes import admin, health, launches
from launchwindow.config import APP_DESCRIPTION, APP_NAME, VERSION, Config
from launchwindow.utilities.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    from launchwindow.consumers import start_sweep_scheduler, stop_sweep_scheduler
    from launchwindow.database import get_db, init_db

    # Startup
    setup_logging()
    logger.info(f"Starting {APP_NAME} {VERSION}...")

    init_db()

    service = app.dependency_overrides.get(get_launch_service, get_launch_service)()

    if Config.SYNC_ON_STARTUP:
        try:
            result = service.refresh_directory(force=False)
            logger.info(f"[SYNC] Startup directory check: {result.to_dict()}")
        except Exception as e:
            logger.warning(f"[SYNC] Startup directory sync failed, continuing with stored data: {e}")

    if Config.SCHEDULER_ENABLED:
        try:
            start_sweep_scheduler(service, db_factory=get_db)
        except Exception as e:
            logger.warning(f"[SCHEDULER] Failed to start: {e}")
    else:
        logger.info("[SCHEDULER] Background sweep disabled")

    logger.info(f"{APP_NAME} ready")

    yield

    # Shutdown
    logger.info(f"Shutting down {APP_NAME}...")
    stop_sweep_scheduler()
    service.close()
    logger.info(f"{APP_NAME} stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        description=APP_DESCRIPTION,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(launches.router, prefix="/api/v1", tags=["Launches"])
    app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])

    return app
