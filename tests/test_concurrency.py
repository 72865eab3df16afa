"""
Concurrency safety tests.

Demonstrates:
1. Concurrent creates for the same vehicle admit exactly one booking.
2. A cancel racing a create never leaves the availability flag stale.
3. The per-vehicle lock registry serializes holders and cleans up after itself.
4. Distributed lock prevents simultaneous acquire.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.domain.enums import AvailabilityStatus, BookingStatus
from src.domain.errors import ConflictError
from src.infrastructure.locks import DistributedLock, LockNotAcquired, VehicleLocks
from tests.conftest import TODAY


class TestConcurrentBookings:
    @pytest.mark.asyncio
    async def test_only_one_of_many_concurrent_creates_wins(
        self, booking_engine, uow_factory, customer, admin_identity, vehicle
    ):
        start = TODAY + timedelta(days=3)

        async def attempt(offset: int):
            return await booking_engine.create_booking(
                admin_identity,
                customer_id=customer.id,
                vehicle_id=vehicle.id,
                rent_start_date=start + timedelta(days=offset),
                rent_end_date=start + timedelta(days=offset + 2),
            )

        results = await asyncio.gather(
            *(attempt(n % 2) for n in range(6)), return_exceptions=True
        )

        created = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(failures) == 5
        assert all(isinstance(f, ConflictError) for f in failures)

        async with uow_factory() as uow:
            assert await uow.bookings.count_active_for_vehicle(vehicle.id) == 1
            stored = await uow.vehicles.get_by_id(vehicle.id)
            assert stored.availability_status == AvailabilityStatus.BOOKED

    @pytest.mark.asyncio
    async def test_cancel_racing_create_keeps_flag_consistent(
        self, booking_engine, uow_factory, customer, other_customer,
        customer_identity, other_identity, vehicle,
    ):
        start = TODAY + timedelta(days=3)
        first = await booking_engine.create_booking(
            customer_identity,
            customer_id=customer.id,
            vehicle_id=vehicle.id,
            rent_start_date=start,
            rent_end_date=start + timedelta(days=2),
        )

        cancel, create = await asyncio.gather(
            booking_engine.update_booking(customer_identity, first.id, "cancel"),
            booking_engine.create_booking(
                other_identity,
                customer_id=other_customer.id,
                vehicle_id=vehicle.id,
                rent_start_date=start + timedelta(days=10),
                rent_end_date=start + timedelta(days=12),
            ),
            return_exceptions=True,
        )

        assert cancel.status == BookingStatus.CANCELLED
        async with uow_factory() as uow:
            active = await uow.bookings.count_active_for_vehicle(vehicle.id)
            stored = await uow.vehicles.get_by_id(vehicle.id)
        if isinstance(create, Exception):
            assert isinstance(create, ConflictError)
            assert active == 0
            assert stored.availability_status == AvailabilityStatus.AVAILABLE
        else:
            assert active == 1
            assert stored.availability_status == AvailabilityStatus.BOOKED


class TestVehicleLocks:
    @pytest.mark.asyncio
    async def test_holders_of_one_key_run_one_at_a_time(self):
        locks = VehicleLocks()
        inside = 0
        peak = 0

        async def worker():
            nonlocal inside, peak
            async with locks.hold(1):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(worker() for _ in range(5)))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block_each_other(self):
        locks = VehicleLocks()
        async with locks.hold(1):
            await asyncio.wait_for(self._enter(locks, 2), timeout=1)

    @pytest.mark.asyncio
    async def test_registry_empties_after_release(self):
        locks = VehicleLocks()
        async with locks.hold(1):
            async with locks.hold(2):
                assert len(locks) == 2
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = VehicleLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold(1):
                raise RuntimeError("boom")
        assert len(locks) == 0
        await asyncio.wait_for(self._enter(locks, 1), timeout=1)

    @staticmethod
    async def _enter(locks, key):
        async with locks.hold(key):
            pass


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval_with_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        assert await lock.release() is True
        args = mock_redis.eval.await_args.args
        assert args[1:] == (1, "lock:test-key", lock.token)

    @pytest.mark.asyncio
    async def test_release_without_acquire_is_a_no_op(self):
        mock_redis = AsyncMock()
        lock = DistributedLock(mock_redis, "test-key")
        assert await lock.release() is False
        mock_redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_manager_raises_when_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        with pytest.raises(LockNotAcquired):
            async with DistributedLock(mock_redis, "test-key"):
                pass

    @pytest.mark.asyncio
    async def test_two_instances_get_distinct_tokens(self):
        mock_redis = AsyncMock()
        first = DistributedLock(mock_redis, "k")
        second = DistributedLock(mock_redis, "k")
        assert first.token != second.token
