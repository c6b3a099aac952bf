"""
Lock cache backends.

Both backends are atomic for single-key get, put and forget. Neither offers
check-and-set to callers, so lock acquisition stays best-effort.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as redis

from storesync.config import Settings
from storesync.errors import ConfigurationError


class LockCache(Protocol):
    """Key-value store with per-key expiry in minutes."""

    async def put(self, key: str, value: int, ttl_minutes: int) -> None: ...

    async def get(self, key: str) -> int | None: ...

    async def forget(self, key: str) -> None: ...

    async def close(self) -> None: ...


@dataclass
class _Entry:
    value: int
    expires_at: float


class InMemoryLockCache:
    """
    Process-local lock cache.

    Only coordinates tasks inside one process. Use RedisLockCache when more
    than one worker process shares the lock table.

    Args:
        clock: Monotonic clock in seconds, injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    async def put(self, key: str, value: int, ttl_minutes: int) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_minutes * 60)

    async def get(self, key: str) -> int | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    async def forget(self, key: str) -> None:
        self._entries.pop(key, None)

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._entries.values() if entry.expires_at > now)


class RedisLockCache:
    """
    Redis-backed lock cache shared by every worker process.

    Keys expire natively through ``SET ... EX``.
    """

    def __init__(self, client: redis.Redis, namespace: str = "storesync:lock"):
        self._redis = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisLockCache":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def put(self, key: str, value: int, ttl_minutes: int) -> None:
        await self._redis.set(self._key(key), value, ex=ttl_minutes * 60)

    async def get(self, key: str) -> int | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return int(raw)

    async def forget(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def close(self) -> None:
        await self._redis.aclose()


def create_lock_cache(settings: Settings) -> LockCache:
    """
    Create the shared lock cache for this process.

    InMemoryLockCache is never picked here; it cannot exclude other
    processes and is only passed in explicitly.

    Raises:
        ConfigurationError: If no Redis URL is configured.
    """
    if not settings.redis_url:
        raise ConfigurationError("Store locks need a shared cache; set REDIS_URL")
    return RedisLockCache.from_url(settings.redis_url)
