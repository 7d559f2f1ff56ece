"""FastAPI application for the SaaS subscription lifecycle service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from saas_lifecycle import __version__
from saas_lifecycle.config import get_settings
from saas_lifecycle.marketplace.router import router as marketplace_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    settings = get_settings()
    uses_database = settings.test_mode_enabled and settings.subscription_cache == "database"

    # Startup: create the test subscription cache table
    if uses_database:
        from saas_lifecycle.db import init_database

        logger.info("Initializing test subscription cache database")
        await init_database()

    if settings.test_mode_enabled:
        logger.warning(
            "Test mode is enabled. /test and /webhook/test endpoints are available; "
            "do not enable test mode in production."
        )

    yield

    # Shutdown: dispose of the database engine
    if uses_database:
        from saas_lifecycle.db import close_database

        try:
            await close_database()
        except Exception as e:
            logger.error("Failed to close database: %s", e)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.offer_display_name or "SaaS Subscription Lifecycle",
        description="Marketplace SaaS landing page and webhook handler",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy"}

    # Ready check endpoint
    @app.get("/ready")
    async def ready_check() -> dict:
        """Readiness check endpoint."""
        return {
            "status": "ready",
            "setup_complete": settings.offer_setup_complete,
            "test_mode": settings.test_mode_enabled,
        }

    # Provides:
    # - GET/POST / - Landing page and purchase confirmation
    # - GET/POST /test - Test landing page (admin only, test mode only)
    # - POST /webhook - Marketplace webhook
    # - POST /webhook/test - Test webhook (test mode only)
    app.include_router(marketplace_router)

    return app
