"""Vehicle Registry: CRUD over vehicles with uniqueness and delete guards."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from src.domain.entities import Identity
from src.domain.enums import AvailabilityStatus, VehicleType
from src.domain.errors import ConflictError, NotFoundError, ValidationError
from src.domain.policy import Action, ensure_allowed
from src.domain.pricing import MAX_AMOUNT, to_money
from src.infrastructure.locks import VehicleLocks
from src.infrastructure.models import VehicleModel
from src.infrastructure.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "vehicle_name",
    "type",
    "registration_number",
    "daily_rent_price",
    "availability_status",
)

_DUPLICATE_REGISTRATION = "Vehicle with this registration number already exists"
MAX_DAILY_RATE = MAX_AMOUNT


# ── Field validation ──────────────────────────────────────────────────


def _text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def _vehicle_type(value: Any) -> VehicleType:
    try:
        return VehicleType(value)
    except ValueError:
        raise ValidationError("Invalid vehicle type. Must be car, bike, van, or SUV")


def _availability(value: Any) -> AvailabilityStatus:
    try:
        return AvailabilityStatus(value)
    except ValueError:
        raise ValidationError("Invalid availability status. Must be available or booked")


def _daily_rate(value: Any) -> Decimal:
    try:
        rate = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Daily rent price must be a number")
    if not rate.is_finite() or rate <= 0:
        raise ValidationError("Daily rent price must be positive")
    if rate >= MAX_DAILY_RATE:
        raise ValidationError(f"Daily rent price must be below {MAX_DAILY_RATE}")
    return rate


class VehicleRegistry:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        vehicle_locks: Optional[VehicleLocks] = None,
    ):
        self._uow_factory = uow_factory
        self._locks = vehicle_locks or VehicleLocks()

    async def create_vehicle(
        self,
        actor: Identity,
        *,
        vehicle_name: str,
        type: str,
        registration_number: str,
        daily_rent_price: Decimal | float | str,
        availability_status: str = AvailabilityStatus.AVAILABLE,
    ) -> VehicleModel:
        ensure_allowed(actor.role, actor.user_id, None, Action.MANAGE_VEHICLE)
        vehicle = VehicleModel(
            vehicle_name=_text(vehicle_name, "vehicle_name"),
            type=_vehicle_type(type),
            registration_number=_text(registration_number, "registration_number"),
            daily_rent_price=_daily_rate(daily_rent_price),
            availability_status=_availability(availability_status),
        )
        if vehicle.availability_status != AvailabilityStatus.AVAILABLE:
            raise ConflictError("A new vehicle has no bookings and must be available")

        try:
            async with self._uow_factory() as uow:
                if await uow.vehicles.registration_taken(vehicle.registration_number):
                    raise ConflictError(_DUPLICATE_REGISTRATION)
                await uow.vehicles.add(vehicle)
        except IntegrityError:
            raise ConflictError(_DUPLICATE_REGISTRATION)

        logger.info("Vehicle %s (%s) created", vehicle.id, vehicle.registration_number)
        return vehicle

    async def list_vehicles(self) -> list[VehicleModel]:
        async with self._uow_factory() as uow:
            return await uow.vehicles.list_all()

    async def get_vehicle(self, vehicle_id: int) -> VehicleModel:
        async with self._uow_factory() as uow:
            vehicle = await uow.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")
        return vehicle

    async def update_vehicle(
        self, actor: Identity, vehicle_id: int, changes: dict[str, Any]
    ) -> VehicleModel:
        """Apply a partial update; keys outside ``UPDATABLE_FIELDS`` are ignored."""
        ensure_allowed(actor.role, actor.user_id, None, Action.MANAGE_VEHICLE)
        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}

        async with self._locks.hold(vehicle_id):
            try:
                async with self._uow_factory() as uow:
                    vehicle = await uow.vehicles.get_for_update(vehicle_id)
                    if vehicle is None:
                        raise NotFoundError("Vehicle not found")
                    if not changes:
                        raise ValidationError("No fields to update")

                    if "vehicle_name" in changes:
                        vehicle.vehicle_name = _text(changes["vehicle_name"], "vehicle_name")
                    if "type" in changes:
                        vehicle.type = _vehicle_type(changes["type"])
                    if "registration_number" in changes:
                        registration = _text(
                            changes["registration_number"], "registration_number"
                        )
                        if await uow.vehicles.registration_taken(
                            registration, exclude_id=vehicle_id
                        ):
                            raise ConflictError(_DUPLICATE_REGISTRATION)
                        vehicle.registration_number = registration
                    if "daily_rent_price" in changes:
                        vehicle.daily_rent_price = _daily_rate(changes["daily_rent_price"])
                    if "availability_status" in changes:
                        status = _availability(changes["availability_status"])
                        active = await uow.bookings.count_active_for_vehicle(vehicle_id)
                        expected = (
                            AvailabilityStatus.BOOKED if active else AvailabilityStatus.AVAILABLE
                        )
                        if status != expected:
                            raise ConflictError(
                                f"Vehicle has {active} active booking(s); "
                                f"availability must stay {expected.value}"
                            )
                        vehicle.availability_status = status
            except IntegrityError:
                raise ConflictError(_DUPLICATE_REGISTRATION)

        return vehicle

    async def delete_vehicle(self, actor: Identity, vehicle_id: int) -> None:
        ensure_allowed(actor.role, actor.user_id, None, Action.MANAGE_VEHICLE)
        async with self._locks.hold(vehicle_id):
            async with self._uow_factory() as uow:
                vehicle = await uow.vehicles.get_for_update(vehicle_id)
                if vehicle is None:
                    raise NotFoundError("Vehicle not found")
                if await uow.bookings.count_active_for_vehicle(vehicle_id):
                    raise ConflictError("Cannot delete vehicle with active bookings")
                await uow.vehicles.delete(vehicle_id)
        logger.info("Vehicle %s deleted", vehicle_id)
