"""URL Shortener Service Layer - Resolution and Consistency Engine

This module owns the create path's conflict policy and the read path's
cache-aside protocol between the fast cache (Redis) and the authoritative
store (PostgreSQL).

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    ResolutionService                        │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │   Validation    │  │  Code Generator │  │ Cache-aside  │ │
    │  │                 │  │                 │  │              │ │
    │  │ • long URL      │  │ • SHA-256       │  │ • GET first  │ │
    │  │ • short code    │  │ • base58[:8]    │  │ • backfill   │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                                        │
                ▼                                        ▼
    ┌─────────────────┐                      ┌─────────────────┐
    │  MappingStore   │                      │    FastCache    │
    │  (authoritative)│                      │   (advisory)    │
    └─────────────────┘                      └─────────────────┘

Request Flow Diagrams
=====================

Create Flow
-----------
::
    ┌─────────────┐
    │ POST        │
    │ /shorten    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ valid_long_ │──no──► InvalidInputError
    │ url()?      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ generate_   │
    │ short_code()│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ INSERT ...  │──fail──► StoreUnavailableError
    │ ON CONFLICT │
    │ DO NOTHING  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return code │  (inserted or absorbed: same response, no cache write)
    └─────────────┘

Resolve Flow
------------
::
    ┌─────────────┐
    │  GET /:code │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ valid_short_│──no──► InvalidInputError (cache/store untouched)
    │ code()?     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache GET   │──hit──► return long_url
    └──────┬──────┘
   miss or │ unavailable
           ▼
    ┌─────────────┐
    │ Store find  │──none──► NotFoundError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache SET   │  (best effort; failure logged and swallowed)
    │ with TTL    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ return      │
    │ long_url    │
    └─────────────┘

Key Behaviours
===============
- Create is idempotent: the same long URL always yields the same code and at
  most one row.
- Truncated-hash collisions between two *different* URLs keep the first
  writer's mapping; the second caller still receives the code, which resolves
  to the first URL. This is the documented contract and is not guarded.
- The cache is populated only by a store-backed read, never on create.
- Administrative operations (delete/list/detail) go to the store only. A
  deleted mapping can keep resolving from cache until its TTL elapses.
- Cache failures never fail a resolve; only store failures are fatal.

Usage Examples
=============
```python
@router.get("/{short_code}")
async def redirect(short_code: str, service: ResolutionService = Depends(get_resolution_service)):
    long_url = await service.resolve(short_code)
    return RedirectResponse(long_url, status_code=308)
```
"""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

from shorturl.codegen import generate_short_code
from shorturl.enums import CacheStatus, CreateOutcome, RequestStatus
from shorturl.exceptions import CacheUnavailableError, InvalidInputError, NotFoundError, ShortenerError
from shorturl.schemas import UrlMappingRecord
from shorturl.storage import FastCache, MappingStore
from shorturl.validation import valid_long_url, valid_short_code

if TYPE_CHECKING:
    from shorturl.dependencies import RequestContext

__all__ = ["ResolutionService", "ShortenResult"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

CREATE_REQUESTS_TOTAL = Counter(
    "shorturl_create_requests_total",
    "Total create requests",
    ["status", "outcome"],
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "shorturl_resolve_requests_total",
    "Total resolve requests",
    ["status", "cache"],
)
CACHE_BACKFILL_FAILURES_TOTAL = Counter(
    "shorturl_cache_backfill_failures_total",
    "Cache population attempts that failed after a store hit",
)
CREATE_DURATION = Histogram(
    "shorturl_create_duration_seconds",
    "Time taken to create short URLs",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
RESOLVE_DURATION = Histogram(
    "shorturl_resolve_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
)


@dataclass(frozen=True)
class ShortenResult:
    short_code: str
    long_url: str


class ResolutionService:
    """Orchestrates validation, code generation, the store and the cache.

    The service holds no state of its own beyond references to the shared
    adapters, so building one per request is cheap.

    Example:
        >>> service = ResolutionService(store, cache, logger, cache_ttl_seconds=3600)
        >>> result = await service.create("https://example.com/a")
        >>> await service.resolve(result.short_code)
        'https://example.com/a'
    """

    def __init__(
        self,
        store: MappingStore,
        cache: FastCache | None,
        logger: logging.Logger | logging.LoggerAdapter,
        cache_ttl_seconds: int = 3600,
        cache_key_prefix: str = "url",
    ):
        self._store = store
        self._cache = cache
        self._logger = logger
        self._cache_ttl = cache_ttl_seconds
        self._cache_key_prefix = cache_key_prefix

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ResolutionService":
        """Build a service from the per-request context and the shared app context."""
        settings = ctx.settings
        return cls(
            store=ctx.app.store,
            cache=ctx.app.cache,
            logger=ctx.logger,
            cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
            cache_key_prefix=settings.CACHE_KEY_PREFIX,
        )

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(self, long_url: str) -> ShortenResult:
        """Map ``long_url`` to its short code, creating the row if absent.

        Raises:
            InvalidInputError: If ``long_url`` is not an absolute URL.
            StoreUnavailableError: If the insert cannot complete.
        """
        start_time = time.perf_counter()

        if not valid_long_url(long_url):
            CREATE_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR, outcome="none").inc()
            self._logger.warning(f"Invalid URL format: {long_url!r}")
            raise InvalidInputError("Invalid URL format")

        short_code = generate_short_code(long_url)
        self._logger.debug(f"Generated short code {short_code} for {long_url}")

        try:
            outcome = await self._store.create(short_code, long_url)
        except ShortenerError:
            CREATE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, outcome="none").inc()
            raise
        finally:
            CREATE_DURATION.observe(time.perf_counter() - start_time)

        CREATE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, outcome=outcome).inc()
        if outcome is CreateOutcome.CONFLICT_ABSORBED:
            self._logger.info(f"Short code {short_code} already exists, create absorbed")
        else:
            self._logger.info(f"Created short code {short_code}")

        return ShortenResult(short_code=short_code, long_url=long_url)

    async def resolve(self, short_code: str) -> str:
        """Return the long URL for ``short_code`` using the cache-aside read path.

        Raises:
            InvalidInputError: If ``short_code`` cannot be a minted code.
            NotFoundError: If no mapping exists.
            StoreUnavailableError: On a cache miss when the store is unreachable.
        """
        start_time = time.perf_counter()
        self._require_valid_code(short_code)

        try:
            cached, cache_status = await self._lookup_from_cache(short_code)
            if cached is not None:
                RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=cache_status).inc()
                self._logger.info(f"Cache hit for {short_code}")
                return cached

            self._logger.info(f"Cache {cache_status} for {short_code}")
            try:
                record = await self._store.find(short_code)
            except ShortenerError:
                RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, cache=cache_status).inc()
                raise

            if record is None:
                RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache=cache_status).inc()
                self._logger.warning(f"Short code not found: {short_code}")
                raise NotFoundError()

            await self._backfill_cache(short_code, record.long_url)
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=cache_status).inc()
            return record.long_url
        finally:
            RESOLVE_DURATION.observe(time.perf_counter() - start_time)

    async def delete(self, short_code: str) -> None:
        """Delete a mapping from the store. The cache is not invalidated."""
        self._require_valid_code(short_code)

        if not await self._store.delete(short_code):
            self._logger.warning(f"Short code not found: {short_code}")
            raise NotFoundError()
        self._logger.info(f"Short URL deleted: {short_code}")

    async def list_mappings(self) -> list[UrlMappingRecord]:
        return await self._store.list_all()

    async def detail(self, short_code: str) -> UrlMappingRecord:
        """Return the stored mapping, bypassing the cache."""
        self._require_valid_code(short_code)

        record = await self._store.find(short_code)
        if record is None:
            self._logger.warning(f"Short code not found: {short_code}")
            raise NotFoundError()
        return record

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    def _require_valid_code(self, short_code: str) -> None:
        if not valid_short_code(short_code):
            self._logger.warning(f"Invalid short code: {short_code!r}")
            raise InvalidInputError("Invalid short code")

    def _cache_key(self, short_code: str) -> str:
        return f"{self._cache_key_prefix}:{short_code}"

    async def _lookup_from_cache(self, short_code: str) -> tuple[str | None, CacheStatus]:
        if self._cache is None:
            return None, CacheStatus.DISABLED

        try:
            cached = await self._cache.get(self._cache_key(short_code))
        except CacheUnavailableError as exc:
            self._logger.warning(f"Cache unavailable for {short_code}, falling back to store: {exc}")
            return None, CacheStatus.UNAVAILABLE

        if cached is None:
            return None, CacheStatus.MISS
        return cached, CacheStatus.HIT

    async def _backfill_cache(self, short_code: str, long_url: str) -> None:
        if self._cache is None:
            return

        try:
            await self._cache.set_with_ttl(self._cache_key(short_code), long_url, self._cache_ttl)
        except CacheUnavailableError as exc:
            CACHE_BACKFILL_FAILURES_TOTAL.inc()
            self._logger.error(f"Failed to cache {short_code}: {exc}")
