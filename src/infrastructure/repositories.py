"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Methods suffixed ``_for_update`` take a row
lock (``SELECT ... FOR UPDATE``) on backends that support it and always
re-read the row, discarding any stale copy held by the session.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from .models import BookingModel, UserModel, VehicleModel
from src.domain.enums import BookingStatus


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_locked(self, user_id: int, shared: bool = False) -> Optional[UserModel]:
        """Re-read a user holding ``FOR UPDATE`` (or ``FOR SHARE`` when *shared*)."""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .with_for_update(read=shared)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        query = select(UserModel.id).where(UserModel.email == email)
        if exclude_id is not None:
            query = query.where(UserModel.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def list_all(self) -> list[UserModel]:
        result = await self.session.execute(select(UserModel).order_by(UserModel.id))
        return list(result.scalars().all())

    async def delete(self, user_id: int) -> None:
        await self.session.execute(delete(UserModel).where(UserModel.id == user_id))


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_for_update(self, vehicle_id: int) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def registration_taken(
        self, registration_number: str, exclude_id: int | None = None
    ) -> bool:
        query = select(VehicleModel.id).where(
            VehicleModel.registration_number == registration_number
        )
        if exclude_id is not None:
            query = query.where(VehicleModel.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def list_all(self) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).order_by(VehicleModel.id)
        )
        return list(result.scalars().all())

    async def delete(self, vehicle_id: int) -> None:
        await self.session.execute(
            delete(VehicleModel).where(VehicleModel.id == vehicle_id)
        )


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_for_update(self, booking_id: int) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_overlapping(
        self, vehicle_id: int, start: date, end: date
    ) -> list[BookingModel]:
        """Active bookings on *vehicle_id* sharing at least one day with [start, end]."""
        result = await self.session.execute(
            select(BookingModel).where(
                BookingModel.vehicle_id == vehicle_id,
                BookingModel.status == BookingStatus.ACTIVE,
                BookingModel.rent_start_date <= end,
                BookingModel.rent_end_date >= start,
            )
        )
        return list(result.scalars().all())

    async def count_active_for_vehicle(self, vehicle_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.vehicle_id == vehicle_id,
                BookingModel.status == BookingStatus.ACTIVE,
            )
        )
        return result.scalar() or 0

    async def count_active_for_customer(self, customer_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.customer_id == customer_id,
                BookingModel.status == BookingStatus.ACTIVE,
            )
        )
        return result.scalar() or 0

    async def list_with_details(
        self, customer_id: int | None = None
    ) -> list[BookingModel]:
        """Bookings (newest first) with vehicle and customer eagerly loaded."""
        query = (
            select(BookingModel)
            .options(
                joinedload(BookingModel.vehicle),
                joinedload(BookingModel.customer),
            )
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
        )
        if customer_id is not None:
            query = query.where(BookingModel.customer_id == customer_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_expired(self, today: date) -> list[tuple[int, int]]:
        """``(booking_id, vehicle_id)`` pairs of active bookings ended before *today*."""
        result = await self.session.execute(
            select(BookingModel.id, BookingModel.vehicle_id)
            .where(
                BookingModel.status == BookingStatus.ACTIVE,
                BookingModel.rent_end_date < today,
            )
            .order_by(BookingModel.id)
        )
        return [(row.id, row.vehicle_id) for row in result.all()]

    async def vehicle_id_of(self, booking_id: int) -> Optional[int]:
        result = await self.session.execute(
            select(BookingModel.vehicle_id).where(BookingModel.id == booking_id)
        )
        return result.scalar_one_or_none()
