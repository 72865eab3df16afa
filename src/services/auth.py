"""
Authentication
==============

* Passwords are hashed with ``bcrypt`` (hashing runs in a worker thread so
  the event loop is not blocked).
* Tokens are HS256 JWTs (``PyJWT``) carrying only the user id in ``sub``;
  they expire ``jwt_expires_days`` after issuance.
* ``resolve`` re-reads the user on every call, so a role change or a
  deleted account takes effect immediately instead of when the token
  expires.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from sqlalchemy.exc import IntegrityError

from src.config import settings
from src.domain.entities import Identity
from src.domain.enums import UserRole
from src.domain.errors import (
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
)
from src.infrastructure.models import UserModel
from src.infrastructure.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt ignores/rejects anything longer

DUPLICATE_EMAIL = "User with this email already exists"
_BAD_CREDENTIALS = "Invalid email or password"


# ── Shared field rules (also used by the user directory) ──────────────


def normalise_email(value: Any) -> str:
    if not isinstance(value, str) or "@" not in value.strip():
        raise ValidationError("A valid email is required")
    return value.strip().lower()


def check_password(value: Any) -> str:
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if len(value.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    return value


def parse_role(value: Any) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        raise ValidationError("Invalid role. Must be admin or customer")


def required_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


# ── Collaborators ─────────────────────────────────────────────────────


class PasswordHasher:
    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.bcrypt_rounds

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self._hash, password)

    async def verify(self, password: str, hashed: str) -> bool:
        return await asyncio.to_thread(self._verify, password, hashed)

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(self.rounds)).decode()

    @staticmethod
    def _verify(password: str, hashed: str) -> bool:
        encoded = password.encode()
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode())
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False


class TokenCodec:
    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        ttl: Optional[timedelta] = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.ttl = ttl or timedelta(days=settings.jwt_expires_days)

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {"sub": str(user_id), "iat": now, "exp": now + self.ttl}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def user_id(self, token: str) -> int:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Token has expired")
        except jwt.PyJWTError:
            raise UnauthorizedError("Invalid token")
        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            raise UnauthorizedError("Invalid token")


# ── Service ───────────────────────────────────────────────────────────


class AuthService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        hasher: Optional[PasswordHasher] = None,
        tokens: Optional[TokenCodec] = None,
        allow_admin_signup: Optional[bool] = None,
    ):
        self._uow_factory = uow_factory
        self.hasher = hasher or PasswordHasher()
        self.tokens = tokens or TokenCodec()
        self._allow_admin_signup = (
            settings.allow_admin_signup if allow_admin_signup is None else allow_admin_signup
        )

    async def signup(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: str,
        role: UserRole | str = UserRole.CUSTOMER,
    ) -> UserModel:
        user = UserModel(
            name=required_text(name, "name"),
            email=normalise_email(email),
            phone=required_text(phone, "phone"),
            role=parse_role(role or UserRole.CUSTOMER),
        )
        if user.role == UserRole.ADMIN and not self._allow_admin_signup:
            raise ForbiddenError("Admin accounts cannot be self-registered")
        user.password_hash = await self.hasher.hash(check_password(password))

        try:
            async with self._uow_factory() as uow:
                if await uow.users.email_taken(user.email):
                    raise ConflictError(DUPLICATE_EMAIL)
                await uow.users.add(user)
        except IntegrityError:
            raise ConflictError(DUPLICATE_EMAIL)

        logger.info("User %s registered as %s", user.id, user.role.value)
        return user

    async def signin(self, email: str, password: str) -> tuple[str, UserModel]:
        if not isinstance(email, str) or not isinstance(password, str):
            raise ValidationError("Email and password are required")
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_email(email.strip().lower())
        if user is None or not await self.hasher.verify(password, user.password_hash):
            raise UnauthorizedError(_BAD_CREDENTIALS)
        return self.tokens.issue(user.id), user

    async def resolve(self, token: str) -> Identity:
        """Map a bearer token to the *current* identity and role of its user."""
        user_id = self.tokens.user_id(token)
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("User not found")
        return Identity(user_id=user.id, role=UserRole(user.role), email=user.email)
