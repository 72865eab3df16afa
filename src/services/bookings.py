"""
Booking Engine
==============

Owns the booking lifecycle and the vehicle availability flag that mirrors
it.

Concurrency safety
------------------
Every operation that changes a vehicle's set of active bookings runs as
one unit of work that

1. holds the vehicle's in-process lock (``VehicleLocks``),
2. re-reads the vehicle with ``SELECT ... FOR UPDATE``,
3. re-verifies availability / overlap / booking status, and only then
4. writes the booking and the vehicle flag together.

Two concurrent creates for the same vehicle therefore queue on the vehicle
row; the second one sees the first one's booking and fails with a
conflict.  The expiry sweep closes bookings one transaction at a time
through the same path.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm.attributes import set_committed_value

from src.domain.entities import DateRange, Identity, ensure_transition
from src.domain.enums import (
    ACTION_TARGETS,
    AvailabilityStatus,
    BookingAction,
    BookingStatus,
)
from src.domain.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from src.domain.policy import Action, Decision, decide, ensure_allowed
from src.domain.pricing import PricingEngine
from src.infrastructure.locks import VehicleLocks
from src.infrastructure.models import BookingModel, VehicleModel
from src.infrastructure.unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

# Accepted spellings of the update action, including the target statuses.
_ACTION_ALIASES: dict[str, BookingAction] = {
    "cancel": BookingAction.CANCEL,
    "cancelled": BookingAction.CANCEL,
    "return": BookingAction.RETURN,
    "returned": BookingAction.RETURN,
}


def parse_action(value: BookingAction | str) -> BookingAction:
    if isinstance(value, BookingAction):
        return value
    action = _ACTION_ALIASES.get(str(value).strip().lower())
    if action is None:
        raise ValidationError('Invalid status. Must be "cancelled" or "returned"')
    return action


class BookingEngine:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        vehicle_locks: Optional[VehicleLocks] = None,
        pricing: Optional[PricingEngine] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._uow_factory = uow_factory
        self._locks = vehicle_locks or VehicleLocks()
        self._pricing = pricing or PricingEngine()
        self._clock = clock

    # ── Create ────────────────────────────────────────────────────────

    async def create_booking(
        self,
        actor: Identity,
        customer_id: int,
        vehicle_id: int,
        rent_start_date: date | str,
        rent_end_date: date | str,
    ) -> BookingModel:
        ensure_allowed(actor.role, actor.user_id, customer_id, Action.CREATE_BOOKING)
        period = DateRange.parse(rent_start_date, rent_end_date)

        async with self._locks.hold(vehicle_id):
            async with self._uow_factory() as uow:
                vehicle = await uow.vehicles.get_for_update(vehicle_id)
                if vehicle is None:
                    raise NotFoundError("Vehicle not found")
                # FOR SHARE keeps the customer from being deleted under us.
                if await uow.users.get_locked(customer_id, shared=True) is None:
                    raise NotFoundError("Customer not found")

                if vehicle.availability_status != AvailabilityStatus.AVAILABLE:
                    raise ConflictError("Vehicle is not available for booking")

                clashes = await uow.bookings.find_overlapping(
                    vehicle_id, period.start, period.end
                )
                if clashes:
                    raise ConflictError(
                        "Vehicle is already booked for the selected dates"
                    )

                booking = BookingModel(
                    customer_id=customer_id,
                    vehicle_id=vehicle_id,
                    rent_start_date=period.start,
                    rent_end_date=period.end,
                    total_price=self._pricing.total_price(
                        period, vehicle.daily_rent_price
                    ),
                    status=BookingStatus.ACTIVE,
                )
                await uow.bookings.add(booking)
                set_committed_value(booking, "vehicle", vehicle)
                await self._sync_availability(uow, vehicle)

        logger.info(
            "Booking %s created: vehicle=%s customer=%s %s..%s total=%s",
            booking.id,
            vehicle_id,
            customer_id,
            period.start,
            period.end,
            booking.total_price,
        )
        return booking

    # ── Read ──────────────────────────────────────────────────────────

    @staticmethod
    def sees_all_bookings(actor: Identity) -> bool:
        return (
            decide(actor.role, actor.user_id, None, Action.LIST_ALL_BOOKINGS)
            is Decision.ALLOW
        )

    async def list_bookings(self, actor: Identity) -> list[BookingModel]:
        """Every booking for admins, only their own for customers; newest first."""
        async with self._uow_factory() as uow:
            return await uow.bookings.list_with_details(
                None if self.sees_all_bookings(actor) else actor.user_id
            )

    # ── Cancel / return ───────────────────────────────────────────────

    async def update_booking(
        self,
        actor: Identity,
        booking_id: int,
        action: BookingAction | str,
    ) -> BookingModel:
        action = parse_action(action)

        # A booking never changes vehicle, so this read needs no lock.
        async with self._uow_factory() as uow:
            vehicle_id = await uow.bookings.vehicle_id_of(booking_id)
        if vehicle_id is None:
            raise NotFoundError("Booking not found")

        async with self._locks.hold(vehicle_id):
            async with self._uow_factory() as uow:
                vehicle = await uow.vehicles.get_for_update(vehicle_id)
                booking = await uow.bookings.get_for_update(booking_id)
                if booking is None or vehicle is None:
                    raise NotFoundError("Booking not found")

                if action is BookingAction.CANCEL:
                    ensure_allowed(
                        actor.role, actor.user_id, booking.customer_id,
                        Action.CANCEL_BOOKING,
                    )
                    ensure_transition(booking.status, BookingStatus.CANCELLED)
                    if self._clock() >= booking.rent_start_date:
                        raise InvalidStateError(
                            "Cannot cancel booking that has already started"
                        )
                else:
                    ensure_allowed(
                        actor.role, actor.user_id, booking.customer_id,
                        Action.RETURN_BOOKING,
                    )
                    ensure_transition(booking.status, BookingStatus.RETURNED)

                booking.status = ACTION_TARGETS[action]
                set_committed_value(booking, "vehicle", vehicle)
                await self._sync_availability(uow, vehicle)

        logger.info(
            "Booking %s %s by user %s", booking_id, booking.status.value, actor.user_id
        )
        return booking

    # ── Expiry sweep ──────────────────────────────────────────────────

    async def sweep_expired(self) -> int:
        """Return every active booking whose end date is before today.

        Each booking is closed in its own transaction under its vehicle's
        lock and re-checked there, so a booking cancelled or returned in
        the meantime is skipped.  A failure on one booking is logged and
        the sweep moves on.  Returns the number of bookings closed.
        """
        today = self._clock()
        async with self._uow_factory() as uow:
            expired = await uow.bookings.list_expired(today)

        closed = 0
        for booking_id, vehicle_id in expired:
            try:
                if await self._close_expired(booking_id, vehicle_id, today):
                    closed += 1
            except Exception:
                logger.exception("Failed to auto-return booking %s", booking_id)

        if expired:
            logger.info("Auto-returned %d of %d expired bookings", closed, len(expired))
        return closed

    async def run_sweep(self, actor: Identity) -> int:
        ensure_allowed(actor.role, actor.user_id, None, Action.RUN_SWEEP)
        return await self.sweep_expired()

    async def _close_expired(self, booking_id: int, vehicle_id: int, today: date) -> bool:
        async with self._locks.hold(vehicle_id):
            async with self._uow_factory() as uow:
                vehicle = await uow.vehicles.get_for_update(vehicle_id)
                booking = await uow.bookings.get_for_update(booking_id)
                if (
                    vehicle is None
                    or booking is None
                    or booking.status != BookingStatus.ACTIVE
                    or booking.rent_end_date >= today
                ):
                    return False
                booking.status = BookingStatus.RETURNED
                await self._sync_availability(uow, vehicle)
        return True

    # ── Internals ─────────────────────────────────────────────────────

    @staticmethod
    async def _sync_availability(uow: UnitOfWork, vehicle: VehicleModel) -> None:
        """Set the flag from the vehicle's active bookings, as of this transaction."""
        await uow.flush()
        active = await uow.bookings.count_active_for_vehicle(vehicle.id)
        vehicle.availability_status = (
            AvailabilityStatus.BOOKED if active else AvailabilityStatus.AVAILABLE
        )
