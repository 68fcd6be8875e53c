"""FastAPI application bootstrap and lifecycle wiring."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from deskspace.controllers.admin_controller import router as admin_router
from deskspace.controllers.booking_controller import router as booking_router
from deskspace.repository.data_repository import DataRepository
from deskspace.services.auth_service import AuthService
from deskspace.services.booking_service import BookingService
from deskspace.services.settings_service import SiteSettingsService
from deskspace.utils.config import Settings, get_settings
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are created here and injected through app.state so every
    dependency is traceable from this function.
    """
    settings = settings or get_settings()

    repository = DataRepository(settings)
    settings_service = SiteSettingsService(repository=repository, settings=settings)
    booking_service = BookingService(
        repository=repository,
        settings_service=settings_service,
        settings=settings,
    )
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(booking_router)
    app.include_router(admin_router)

    app.state.repository = repository
    app.state.settings_service = settings_service
    app.state.booking_service = booking_service
    app.state.auth_service = auth_service

    return app


def startup(app: FastAPI) -> None:
    """Create the schema and seed missing booking settings; safe to re-run."""
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    logger.info("Startup: seeding default site settings")
    repository.seed_default_settings()

    if not app.state.auth_service.auth_enabled:
        logger.warning("Startup: ADMIN_TOKEN/STAFF_TOKEN not set, staff endpoints are open")

    logger.info("Startup complete")


app = create_app()
