"""
Access Policy
=============

A single pure decision function answers "may this identity do this to a
resource owned by that identity?".  Every permission check in the
services goes through ``decide`` / ``ensure_allowed``.

Rules
-----
* Admins are allowed everything.
* Customers are allowed an action only on resources they own, except for
  the admin-only actions listed in ``ADMIN_ONLY_ACTIONS``, which are
  denied regardless of ownership.
"""

from __future__ import annotations

import enum
from typing import Optional

from .enums import UserRole
from .errors import ForbiddenError


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


class Action(str, enum.Enum):
    CREATE_BOOKING = "create_booking"
    LIST_ALL_BOOKINGS = "list_all_bookings"
    CANCEL_BOOKING = "cancel_booking"
    RETURN_BOOKING = "return_booking"
    RUN_SWEEP = "run_sweep"
    MANAGE_VEHICLE = "manage_vehicle"
    LIST_USERS = "list_users"
    UPDATE_USER = "update_user"
    CHANGE_USER_ROLE = "change_user_role"
    DELETE_USER = "delete_user"


ADMIN_ONLY_ACTIONS: frozenset[Action] = frozenset(
    {
        Action.LIST_ALL_BOOKINGS,
        Action.RETURN_BOOKING,
        Action.RUN_SWEEP,
        Action.MANAGE_VEHICLE,
        Action.LIST_USERS,
        Action.CHANGE_USER_ROLE,
        Action.DELETE_USER,
    }
)

DENIAL_MESSAGES: dict[Action, str] = {
    Action.CREATE_BOOKING: "You can only create bookings for yourself",
    Action.CANCEL_BOOKING: "You can only cancel your own bookings",
    Action.RETURN_BOOKING: "Only admin can mark bookings as returned",
    Action.UPDATE_USER: "You can only update your own profile",
    Action.CHANGE_USER_ROLE: "Only admin can change user roles",
}


def decide(
    role: UserRole | str,
    actor_id: int,
    owner_id: Optional[int],
    action: Action,
) -> Decision:
    if UserRole(role) == UserRole.ADMIN:
        return Decision.ALLOW
    if action in ADMIN_ONLY_ACTIONS:
        return Decision.DENY
    if owner_id is not None and owner_id == actor_id:
        return Decision.ALLOW
    return Decision.DENY


def ensure_allowed(
    role: UserRole | str,
    actor_id: int,
    owner_id: Optional[int],
    action: Action,
) -> None:
    """Raise ``ForbiddenError`` when ``decide`` denies the action."""
    if decide(role, actor_id, owner_id, action) is Decision.DENY:
        raise ForbiddenError(DENIAL_MESSAGES.get(action))
