"""
Shared test fixtures.

Each test gets its own file-backed SQLite database (via aiosqlite) built
from the production models, so tests run without Docker / PostgreSQL /
Redis.  A file rather than ``:memory:`` lets concurrent units of work use
separate connections to the same data, as they would in production.

Services are wired with a frozen clock, a fast bcrypt cost and a fixed JWT
secret so results are deterministic.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from src.api.app import create_app
from src.api.middleware import limiter
from src.domain.entities import Identity
from src.domain.enums import AvailabilityStatus, UserRole, VehicleType
from src.infrastructure.database import build_engine, build_session_factory, create_tables
from src.infrastructure.locks import VehicleLocks
from src.infrastructure.models import UserModel, VehicleModel
from src.infrastructure.unit_of_work import UnitOfWorkFactory, unit_of_work_factory
from src.services.auth import AuthService, PasswordHasher, TokenCodec
from src.services.bookings import BookingEngine
from src.services.users import UserService
from src.services.vehicles import VehicleRegistry

TODAY = date(2030, 1, 10)
TEST_SECRET = "test-secret"


@dataclass
class FrozenClock:
    today: date = TODAY

    def __call__(self) -> date:
        return self.today


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create the schema in a fresh SQLite file, then dispose the engine."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'rental.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow_factory(db_engine) -> UnitOfWorkFactory:
    return unit_of_work_factory(build_session_factory(db_engine))


# ── Collaborators ─────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _no_rate_limit():
    previous, limiter.enabled = limiter.enabled, False
    yield
    limiter.enabled = previous


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenCodec:
    return TokenCodec(secret=TEST_SECRET)


@pytest.fixture
def vehicle_locks() -> VehicleLocks:
    return VehicleLocks()


@pytest.fixture
def booking_engine(uow_factory, vehicle_locks, clock) -> BookingEngine:
    return BookingEngine(uow_factory, vehicle_locks, clock=clock)


@pytest.fixture
def vehicle_registry(uow_factory, vehicle_locks) -> VehicleRegistry:
    return VehicleRegistry(uow_factory, vehicle_locks)


@pytest.fixture
def auth_service(uow_factory, hasher, tokens) -> AuthService:
    return AuthService(uow_factory, hasher=hasher, tokens=tokens, allow_admin_signup=False)


@pytest.fixture
def user_service(uow_factory, hasher) -> UserService:
    return UserService(uow_factory, hasher=hasher)


# ── Seed data ─────────────────────────────────────────────────────────


async def _add_user(uow_factory, hasher, *, name, email, password, role) -> UserModel:
    async with uow_factory() as uow:
        return await uow.users.add(
            UserModel(
                name=name,
                email=email,
                password_hash=await hasher.hash(password),
                phone="+1000000000",
                role=role,
            )
        )


async def add_vehicle(
    uow_factory,
    registration_number: str,
    daily_rent_price: str = "50.00",
    type: VehicleType = VehicleType.CAR,
) -> VehicleModel:
    async with uow_factory() as uow:
        return await uow.vehicles.add(
            VehicleModel(
                vehicle_name=f"Vehicle {registration_number}",
                type=type,
                registration_number=registration_number,
                daily_rent_price=Decimal(daily_rent_price),
                availability_status=AvailabilityStatus.AVAILABLE,
            )
        )


@pytest_asyncio.fixture
async def admin(uow_factory, hasher) -> UserModel:
    return await _add_user(
        uow_factory, hasher,
        name="Admin User", email="admin@rental.com", password="admin123",
        role=UserRole.ADMIN,
    )


@pytest_asyncio.fixture
async def customer(uow_factory, hasher) -> UserModel:
    return await _add_user(
        uow_factory, hasher,
        name="John Customer", email="customer@rental.com", password="customer123",
        role=UserRole.CUSTOMER,
    )


@pytest_asyncio.fixture
async def other_customer(uow_factory, hasher) -> UserModel:
    return await _add_user(
        uow_factory, hasher,
        name="Jane Customer", email="jane@rental.com", password="jane1234",
        role=UserRole.CUSTOMER,
    )


@pytest_asyncio.fixture
async def vehicle(uow_factory) -> VehicleModel:
    return await add_vehicle(uow_factory, "ABC-1234", "50.00")


@pytest.fixture
def admin_identity(admin) -> Identity:
    return Identity(user_id=admin.id, role=UserRole.ADMIN, email=admin.email)


@pytest.fixture
def customer_identity(customer) -> Identity:
    return Identity(user_id=customer.id, role=UserRole.CUSTOMER, email=customer.email)


@pytest.fixture
def other_identity(other_customer) -> Identity:
    return Identity(
        user_id=other_customer.id, role=UserRole.CUSTOMER, email=other_customer.email
    )


# ── HTTP ──────────────────────────────────────────────────────────────


@pytest.fixture
def app(uow_factory, booking_engine, vehicle_registry, auth_service, user_service):
    app = create_app(uow_factory)
    app.state.booking_engine = booking_engine
    app.state.vehicle_registry = vehicle_registry
    app.state.auth_service = auth_service
    app.state.user_service = user_service
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def bearer(tokens):
    """Build an ``Authorization`` header for a user."""

    def _headers(user: UserModel) -> dict[str, str]:
        return {"Authorization": f"Bearer {tokens.issue(user.id)}"}

    return _headers
