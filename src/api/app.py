"""
FastAPI application factory.

* Builds the services once and keeps them on ``app.state``.
* Registers routes for auth, vehicles, users, bookings and admin.
* Creates tables and starts / stops the expiry sweeper via lifespan events.
* Applies rate-limiting, CORS and the envelope error handlers.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_exception_handlers
from src.api.middleware import limiter
from src.api.responses import envelope
from src.api.routes import admin, auth, bookings, users, vehicles
from src.config import settings
from src.infrastructure.database import create_tables
from src.infrastructure.locks import VehicleLocks
from src.infrastructure.redis_client import close_redis, get_redis
from src.infrastructure.unit_of_work import UnitOfWorkFactory, unit_of_work_factory
from src.services.auth import AuthService
from src.services.bookings import BookingEngine
from src.services.users import UserService
from src.services.vehicles import VehicleRegistry
from src.workers.expiry_sweeper import ExpirySweeper

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and start the sweeper on startup; stop it on shutdown."""
    if settings.create_tables_on_startup:
        await create_tables()
    if settings.sweep_enabled:
        await app.state.sweeper.start()
    yield
    await app.state.sweeper.stop()
    await close_redis()


def create_app(uow_factory: Optional[UnitOfWorkFactory] = None) -> FastAPI:
    app = FastAPI(
        title="Vehicle Rental System API",
        description=(
            "Vehicle inventory, customer accounts and rental bookings with "
            "role-based access, conflict-free reservations and automatic "
            "return of expired rentals."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Services
    uow_factory = uow_factory or unit_of_work_factory()
    vehicle_locks = VehicleLocks()
    booking_engine = BookingEngine(uow_factory, vehicle_locks)
    app.state.booking_engine = booking_engine
    app.state.vehicle_registry = VehicleRegistry(uow_factory, vehicle_locks)
    app.state.user_service = UserService(uow_factory)
    app.state.auth_service = AuthService(uow_factory)
    app.state.sweeper = ExpirySweeper(
        booking_engine,
        interval_seconds=settings.sweep_interval_seconds,
        redis_factory=get_redis if settings.sweep_use_distributed_lock else None,
        lock_ttl_seconds=settings.sweep_lock_ttl_seconds,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Routers
    for module in (auth, vehicles, users, bookings, admin):
        app.include_router(module.router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root():
        return envelope("Vehicle Rental System API is running")

    return app
