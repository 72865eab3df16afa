"""FastAPI dependency injection helpers.

Services are built once per app in ``create_app`` and kept on
``app.state``; these helpers hand them to the routes.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.domain.entities import Identity
from src.domain.errors import UnauthorizedError
from src.services.auth import AuthService
from src.services.bookings import BookingEngine
from src.services.users import UserService
from src.services.vehicles import VehicleRegistry

_bearer = HTTPBearer(auto_error=False)


def get_booking_engine(request: Request) -> BookingEngine:
    return request.app.state.booking_engine


def get_vehicle_registry(request: Request) -> VehicleRegistry:
    return request.app.state.vehicle_registry


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    auth: AuthService = Depends(get_auth_service),
) -> Identity:
    """Resolve the bearer token to the caller's current identity and role."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access denied. No token provided.")
    return await auth.resolve(credentials.credentials)
