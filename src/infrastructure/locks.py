"""
Locks guarding the vehicle / active-booking state.

``VehicleLocks``
    In-process, per-vehicle ``asyncio.Lock`` registry.  Every operation
    that changes a vehicle's set of active bookings holds the vehicle's
    lock for the length of its unit of work, on top of the database row
    lock.  This keeps the check-then-write sequences serialized on
    backends without ``SELECT ... FOR UPDATE`` (SQLite).

``DistributedLock``
    Redis lock used by the expiry sweeper so only one API process runs a
    sweep cycle at a time.  ``SET NX EX`` to acquire, a Lua
    compare-and-delete to release only a lock we still own.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    """Raised by ``DistributedLock`` used as a context manager when held elsewhere."""


class VehicleLocks:
    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class DistributedLock:
    def __init__(self, client: aioredis.Redis, name: str, ttl_seconds: int = 60):
        self.redis = client
        self.key = f"lock:{name}"
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex
        self.held = False

    async def acquire(self) -> bool:
        """Try once; returns True if this instance now owns the lock."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )
        return self.held

    async def release(self) -> bool:
        """Delete the key only if it still carries our token."""
        if not self.held:
            return False
        self.held = False
        return bool(await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token))

    async def __aenter__(self) -> DistributedLock:
        if not await self.acquire():
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.release()
