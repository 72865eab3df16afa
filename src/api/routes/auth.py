"""
Auth endpoints
==============

POST /api/v1/auth/signup -- register (role defaults to customer; admin
                            self-signup is 403 unless ALLOW_ADMIN_SIGNUP)
POST /api/v1/auth/signin -- exchange email + password for a bearer token
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_auth_service
from src.api.middleware import DEFAULT_LIMIT, SIGNIN_LIMIT, limiter
from src.api.responses import envelope
from src.api.schemas import AuthResponse, SigninRequest, SignupRequest, UserResponse
from src.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=201, summary="Register a new user")
@limiter.limit(DEFAULT_LIMIT)
async def signup(
    request: Request,
    body: SignupRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Register a user.  ``role`` defaults to ``customer``; asking for
    ``admin`` is refused with 403 unless ``ALLOW_ADMIN_SIGNUP`` is enabled."""
    user = await auth.signup(**body.model_dump())
    return envelope("User registered successfully", UserResponse.model_validate(user))


@router.post("/signin", summary="Sign in and receive a bearer token")
@limiter.limit(SIGNIN_LIMIT)
async def signin(
    request: Request,
    body: SigninRequest,
    auth: AuthService = Depends(get_auth_service),
):
    token, user = await auth.signin(body.email, body.password)
    return envelope(
        "Login successful",
        AuthResponse(token=token, user=UserResponse.model_validate(user)),
    )
