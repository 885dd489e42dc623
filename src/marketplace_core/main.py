"""FastAPI application entry point for the marketplace lifecycle core.

Lifecycle:
    1. Startup: Initialize logging and the database, create tables (dev mode).
    2. Running: Serve the transition, resource and matching APIs.
    3. Shutdown: Dispose of the database engine.

Run with:
    uvicorn marketplace_core.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from marketplace_core import __version__
from marketplace_core.config import get_settings
from marketplace_core.logging_config import get_logger, setup_logging_from_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging_from_settings(settings)
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        audit_accepted=settings.guard_audit_accepted,
    )

    # 2. Initialize database
    from marketplace_core.infrastructure.database.engine import close_db, init_db

    await init_db()

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Marketplace Lifecycle Core",
        description=(
            "Transition guard, audit log and worker matching for a "
            "services marketplace."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from marketplace_core.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from marketplace_core.api.routes.health import router as health_router
    from marketplace_core.api.routes.matching import router as matching_router
    from marketplace_core.api.routes.transitions import router as transitions_router

    app.include_router(health_router)
    app.include_router(transitions_router)
    app.include_router(matching_router)

    return app


# The app instance used by Uvicorn
app = create_app()
