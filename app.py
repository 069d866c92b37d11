"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.admin_controller import router as admin_router
from backend.controllers.allocation_controller import router as allocation_router
from backend.domain.models import WEEKS
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService
from backend.services.booking_gate import BookingGate, Clock
from backend.services.seeder_service import AutoAllocationSeeder
from backend.services.settings_service import SettingsService
from backend.services.summary_service import SummaryService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service is constructed here and injected through app.state, so a
    test can pass its own settings (temporary database) and a fixed clock.
    """
    settings = settings or get_settings()

    # --- Repository (single SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services (business rules, no direct DB access) ---
    settings_service = SettingsService(repository=repository, settings=settings)
    booking_gate = BookingGate(
        repository=repository,
        settings_service=settings_service,
        clock=clock,
    )
    allocation_service = AllocationService(
        repository=repository,
        settings_service=settings_service,
        booking_gate=booking_gate,
    )
    seeder = AutoAllocationSeeder(
        repository=repository,
        allocation_service=allocation_service,
    )
    summary_service = SummaryService(repository=repository)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, seed_demo_data=settings.seed_demo_data)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(allocation_router)
    app.include_router(admin_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.settings_service = settings_service
    app.state.booking_gate = booking_gate
    app.state.allocation_service = allocation_service
    app.state.seeder = seeder
    app.state.summary_service = summary_service

    return app


def _startup(app: FastAPI, seed_demo_data: bool) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Order matters:
      1. Schema must exist before seeding.
      2. The employee directory must exist before regular seats are seeded.
    """
    repository: DataRepository = app.state.repository
    seeder: AutoAllocationSeeder = app.state.seeder

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if seed_demo_data:
        logger.info("Startup: seeding demo employee directory (skipped if not empty)")
        repository.seed_demo_data()

    logger.info("Startup: materializing regular allocations for both weeks")
    for week in WEEKS:
        seeder.ensure_all(week)

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
