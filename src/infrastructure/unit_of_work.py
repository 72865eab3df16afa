"""
Unit of Work
============

One ``UnitOfWork`` is one database transaction.  Services open it with
``async with``; leaving the block normally commits, leaving it with an
exception rolls back, so no partially applied operation is ever visible.

    async with uow_factory() as uow:
        vehicle = await uow.vehicles.get_for_update(vehicle_id)
        ...
    # committed here

Services are handed a *factory* rather than a session so tests can point
them at any database.
"""

from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .database import async_session_factory
from .repositories import BookingRepository, UserRepository, VehicleRepository


class UnitOfWork:
    users: UserRepository
    vehicles: VehicleRepository
    bookings: BookingRepository

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> UnitOfWork:
        self.session = self._session_factory()
        self.users = UserRepository(self.session)
        self.vehicles = VehicleRepository(self.session)
        self.bookings = BookingRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        assert self.session is not None
        try:
            if exc_type is None:
                await self.session.commit()
            else:
                await self.session.rollback()
        finally:
            await self.session.close()
            self.session = None

    async def flush(self) -> None:
        assert self.session is not None
        await self.session.flush()


UnitOfWorkFactory = Callable[[], UnitOfWork]


def unit_of_work_factory(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> UnitOfWorkFactory:
    return lambda: UnitOfWork(session_factory)
