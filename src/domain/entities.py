"""
Domain value objects and lifecycle rules.

Patterns used
-------------
- **Value Object** ``DateRange``: an inclusive ``[start, end]`` rental
  window.  Two ranges conflict when they share at least one calendar day,
  so a booking ending on the 5th blocks another starting on the 5th.
- **State Pattern** via ``ensure_transition``: enforces the booking
  lifecycle (ACTIVE -> CANCELLED | RETURNED, both terminal).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .enums import BOOKING_TRANSITIONS, BookingStatus, UserRole
from .errors import InvalidStateError, ValidationError


def parse_date(value: date | str, field_name: str = "date") -> date:
    """Coerce ``YYYY-MM-DD`` strings (or date objects) to a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid date format for {field_name}: expected YYYY-MM-DD")


def ensure_transition(current: BookingStatus | str, target: BookingStatus) -> None:
    """Raise ``InvalidStateError`` unless *current* -> *target* is legal."""
    current = BookingStatus(current)
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise InvalidStateError(
            f"Only active bookings can be {target.value}; booking is {current.value}"
        )


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @classmethod
    def parse(cls, start: date | str, end: date | str) -> DateRange:
        rng = cls(parse_date(start, "rent_start_date"), parse_date(end, "rent_end_date"))
        if rng.end <= rng.start:
            raise ValidationError("End date must be after start date")
        return rng

    @property
    def days(self) -> int:
        """Whole days spanned; a one-night rental is one day."""
        return (self.end - self.start).days

    def overlaps(self, other: DateRange) -> bool:
        return self.start <= other.end and self.end >= other.start


@dataclass(frozen=True)
class Identity:
    """The authenticated user behind a request."""

    user_id: int
    role: UserRole
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
