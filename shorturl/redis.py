"""Redis client management and fast-cache operations.

Flow Diagram — Cache-aside read
===============================
::
    ┌─────────────┐
    │ Resolve     │
    │ request     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ GET url:code│
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ store   │  │ return  │
│ lookup  │  │ value   │
└────┬────┘  └─────────┘
     ▼
┌─────────┐
│ SET EX  │
│ (TTL)   │
└─────────┘

How to Use
===========
**Step 1 — Build once at startup**::
    client = create_redis_client(settings)
    cache = RedisFastCache(client, timeout_seconds=settings.CACHE_TIMEOUT_SECONDS)

**Step 2 — Read and backfill**::
    value = await cache.get("url:4ER7dq2Z")
    await cache.set_with_ttl("url:4ER7dq2Z", "https://example.com/a", 3600)

**Step 3 — Cleanup on shutdown**::
    await cache.close()

Key Behaviours
===============
- One client (and its connection pool) is shared by all requests.
- Every call is bounded by ``CACHE_TIMEOUT_SECONDS``.
- Connection errors, Redis errors and timeouts surface as
  ``CacheUnavailableError``; the resolution service treats them as misses.
- UTF-8 encoding with decode_responses for string operations.
"""

import asyncio

import redis.asyncio as redis
from redis.exceptions import RedisError

from shorturl.config import Settings
from shorturl.exceptions import CacheUnavailableError
from shorturl.storage import FastCache

__all__ = ["RedisFastCache", "create_redis_client"]

_CACHE_ERRORS = (RedisError, OSError, TimeoutError)


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.CACHE_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.CACHE_TIMEOUT_SECONDS,
    )


class RedisFastCache(FastCache):
    def __init__(self, client: redis.Redis, timeout_seconds: float):
        self._client = client
        self._timeout = timeout_seconds

    async def get(self, key: str) -> str | None:
        try:
            async with asyncio.timeout(self._timeout):
                return await self._client.get(key)
        except _CACHE_ERRORS as exc:
            raise CacheUnavailableError(f"Cache GET failed: {exc!r}") from exc

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.set(key, value, ex=ttl_seconds)
        except _CACHE_ERRORS as exc:
            raise CacheUnavailableError(f"Cache SET failed: {exc!r}") from exc

    async def ping(self) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.ping()
        except _CACHE_ERRORS as exc:
            raise CacheUnavailableError(f"Cache PING failed: {exc!r}") from exc

    async def close(self) -> None:
        await self._client.aclose()
