"""
Background Expiry Sweeper
=========================

Runs once at startup and then every ``SWEEP_INTERVAL_SECONDS`` (default
one hour), auto-returning active bookings whose end date has passed.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one API process runs a sweep
  cycle at a time; the others skip the cycle.  When Redis cannot be
  reached the cycle runs without it and the per-booking locks below are
  what keep concurrent sweeps apart.
* Within the cycle, each booking is closed by ``BookingEngine`` under its
  vehicle's row lock, so the sweep never races a request on the same
  vehicle.

A failed cycle (e.g. database down) is logged; the loop keeps going and
tries again at the next interval.  ``stop`` cancels the task and waits
for it, so shutdown never leaves a sweep half-way through a transaction
on a closing pool.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.infrastructure.locks import DistributedLock
from src.services.bookings import BookingEngine

logger = logging.getLogger(__name__)

LOCK_NAME = "booking_expiry_sweep"


class ExpirySweeper:
    def __init__(
        self,
        engine: BookingEngine,
        interval_seconds: float,
        redis_factory: Optional[Callable[[], Awaitable[aioredis.Redis]]] = None,
        lock_ttl_seconds: int = 300,
    ):
        self.engine = engine
        self.interval = interval_seconds
        self._redis_factory = redis_factory
        self._lock_ttl = lock_ttl_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    # ── Public API ────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="expiry-sweeper")
        logger.info("Expiry sweeper started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Expiry sweeper stopped")

    async def run_cycle(self) -> int:
        """Run one sweep.  Returns the number of bookings auto-returned."""
        if self._redis_factory is None:
            return await self.engine.sweep_expired()

        try:
            lock = DistributedLock(
                await self._redis_factory(), LOCK_NAME, ttl_seconds=self._lock_ttl
            )
            acquired = await lock.acquire()
        except RedisError:
            logger.warning(
                "Redis unavailable - sweeping without the distributed lock",
                exc_info=True,
            )
            return await self.engine.sweep_expired()

        if not acquired:
            logger.debug("Sweep lock held by another process - skipping cycle")
            return 0
        try:
            return await self.engine.sweep_expired()
        finally:
            try:
                await lock.release()
            except RedisError:
                logger.warning(
                    "Could not release sweep lock; it expires in %ss", self._lock_ttl
                )

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Periodic loop: run a sweep, then sleep until the interval or stop."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Unhandled error in expiry sweep")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass  # next cycle
