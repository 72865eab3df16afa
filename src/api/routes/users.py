"""
User endpoints
==============

GET    /api/v1/users           -- list (admin)
PUT    /api/v1/users/{user_id} -- update own profile, or any profile as admin
DELETE /api/v1/users/{user_id} -- delete unless the user has active bookings (admin)
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_current_identity, get_user_service
from src.api.middleware import DEFAULT_LIMIT, limiter
from src.api.responses import envelope
from src.api.schemas import UserResponse, UserUpdateRequest
from src.domain.entities import Identity
from src.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", summary="List all users")
@limiter.limit(DEFAULT_LIMIT)
async def list_users(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    rows = await users.list_users(identity)
    return envelope(
        "Users retrieved successfully", [UserResponse.model_validate(u) for u in rows]
    )


@router.put("/{user_id}", summary="Update a user")
@limiter.limit(DEFAULT_LIMIT)
async def update_user(
    request: Request,
    user_id: int,
    body: UserUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_user(identity, user_id, body.model_dump(exclude_unset=True))
    return envelope("User updated successfully", UserResponse.model_validate(user))


@router.delete("/{user_id}", summary="Delete a user")
@limiter.limit(DEFAULT_LIMIT)
async def delete_user(
    request: Request,
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    await users.delete_user(identity, user_id)
    return envelope("User deleted successfully")
