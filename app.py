"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.booking_controller import router as booking_router
from backend.controllers.dependencies import register_exception_handlers
from backend.controllers.wordpress_controller import router as wordpress_router
from backend.repository.data_repository import DataRepository
from backend.services.auth_service import AuthService
from backend.services.availability_service import AvailabilityService
from backend.services.booking_service import BookingService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are constructed here and injected via app.state so tests can
    pass their own Settings (for example a temporary database path).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    auth_service = AuthService(settings=settings)
    availability_service = AvailabilityService(repository=repository, settings=settings)
    booking_service = BookingService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(wordpress_router)
    app.include_router(booking_router)
    register_exception_handlers(app)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.auth_service = auth_service
    app.state.availability_service = availability_service
    app.state.booking_service = booking_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before seeding; seeding is skipped when rooms exist.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    if not app.state.auth_service.auth_configured:
        logger.warning("WORDPRESS_API_KEY is not set; every widget request will be rejected")

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo catalogue (skipped if rooms table not empty)")
        repository.seed_demo_data()

    logger.info("Startup complete: booking API ready")


# Module-level app object for uvicorn
app = create_app()
