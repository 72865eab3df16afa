"""User directory: admin listing, self-or-admin profile updates, guarded deletes."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from src.domain.entities import Identity
from src.domain.errors import ConflictError, NotFoundError, ValidationError
from src.domain.policy import Action, ensure_allowed
from src.infrastructure.models import UserModel
from src.infrastructure.unit_of_work import UnitOfWorkFactory
from src.services.auth import (
    DUPLICATE_EMAIL,
    PasswordHasher,
    check_password,
    normalise_email,
    parse_role,
    required_text,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "password", "phone", "role")


class UserService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        hasher: Optional[PasswordHasher] = None,
    ):
        self._uow_factory = uow_factory
        self._hasher = hasher or PasswordHasher()

    async def list_users(self, actor: Identity) -> list[UserModel]:
        ensure_allowed(actor.role, actor.user_id, None, Action.LIST_USERS)
        async with self._uow_factory() as uow:
            return await uow.users.list_all()

    async def update_user(
        self, actor: Identity, user_id: int, changes: dict[str, Any]
    ) -> UserModel:
        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}

        try:
            async with self._uow_factory() as uow:
                user = await uow.users.get_by_id(user_id)
                if user is None:
                    raise NotFoundError("User not found")
                ensure_allowed(actor.role, actor.user_id, user_id, Action.UPDATE_USER)
                if "role" in changes:
                    ensure_allowed(
                        actor.role, actor.user_id, user_id, Action.CHANGE_USER_ROLE
                    )
                if not changes:
                    raise ValidationError("No fields to update")

                if "name" in changes:
                    user.name = required_text(changes["name"], "name")
                if "email" in changes:
                    email = normalise_email(changes["email"])
                    if await uow.users.email_taken(email, exclude_id=user_id):
                        raise ConflictError(DUPLICATE_EMAIL)
                    user.email = email
                if "password" in changes:
                    user.password_hash = await self._hasher.hash(
                        check_password(changes["password"])
                    )
                if "phone" in changes:
                    user.phone = required_text(changes["phone"], "phone")
                if "role" in changes:
                    user.role = parse_role(changes["role"])
        except IntegrityError:
            raise ConflictError(DUPLICATE_EMAIL)

        return user

    async def delete_user(self, actor: Identity, user_id: int) -> None:
        ensure_allowed(actor.role, actor.user_id, user_id, Action.DELETE_USER)
        async with self._uow_factory() as uow:
            # FOR UPDATE waits out any booking being created for this user.
            if await uow.users.get_locked(user_id) is None:
                raise NotFoundError("User not found")
            if await uow.bookings.count_active_for_customer(user_id):
                raise ConflictError("Cannot delete user with active bookings")
            await uow.users.delete(user_id)
        logger.info("User %s deleted by %s", user_id, actor.user_id)
