"""
Key-value backends for server-side sessions.

``MemoryStore`` keeps everything in-process (single node, tests);
``RedisStore`` shares state through Redis.  Both expose the same small
async API: get / set-with-expiry / delete.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    async def close(self) -> None:
        return None


class MemoryStore(KeyValueStore):
    """In-process store.

    Expired entries are dropped when read and swept on every write, so
    keys that are never read again do not accumulate.  ``clock`` defaults
    to ``time.monotonic`` and can be swapped for a fake in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._data[key]
            return None
        return entry[0]

    async def set(self, key: str, value: str, ttl: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._data[key] = (value, now + ttl)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStore(KeyValueStore):
    def __init__(self, client: redis.Redis, key_prefix: str = "covidwatch") -> None:
        self._redis = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str) -> RedisStore:
        return cls(redis.from_url(url, decode_responses=True))

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def get(self, key: str) -> str | None:
        return await self._redis.get(self._key(key))

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self._redis.setex(self._key(key), ttl, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def close(self) -> None:
        await self._redis.aclose()


def create_store(backend: str, redis_url: str) -> KeyValueStore:
    """Build the configured backend (``memory`` or ``redis``)."""
    if backend == "redis":
        logger.info("Using Redis key-value store")
        return RedisStore.from_url(redis_url)
    if backend != "memory":
        raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")
    return MemoryStore()
