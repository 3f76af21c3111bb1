"""Key-value cache backends (Redis, or in-process for dev and tests)."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

log = structlog.get_logger("dephealth.cache")


class CacheUnavailable(Exception):
    """Raised when the cache store cannot be reached or fails an operation."""


@runtime_checkable
class KeyValueCache(Protocol):
    """Interface every cache backend must satisfy."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def close(self) -> None: ...


class RedisCache:
    """Cache backed by a Redis server (``SET key value EX ttl``)."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCache:
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except RedisError as exc:
            raise CacheUnavailable(f"redis GET {key!r} failed: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheUnavailable(f"redis SET {key!r} failed: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()


class MemoryCache:
    """In-process cache with per-entry expiry.

    Expired entries are dropped on read of the same key, and all of them
    are swept on write. Only suitable for a single worker process.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._clock()
        self._evict_expired(now)
        self._entries[key] = (value, now + ttl_seconds)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def create_cache(redis_url: str | None) -> KeyValueCache:
    """Return a Redis-backed cache when *redis_url* is set, else an in-process one."""
    if redis_url:
        log.info("cache.backend", backend="redis")
        return RedisCache.from_url(redis_url)
    log.info("cache.backend", backend="memory")
    return MemoryCache()
