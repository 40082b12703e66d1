"""Shared pytest fixtures: in-memory backends, the service, and an HTTP client."""

import datetime
import logging
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shorturl.config import Settings
from shorturl.dependencies import AppContext
from shorturl.enums import CreateOutcome
from shorturl.exceptions import CacheUnavailableError, StoreUnavailableError
from shorturl.gate import AdmissionGate
from shorturl.main import create_app
from shorturl.schemas import UrlMappingRecord
from shorturl.service import ResolutionService
from shorturl.storage import FastCache, MappingStore

BASE_URL = "http://sho.rt"


class InMemoryMappingStore(MappingStore):
    """Dict-backed store with a unique key on short_code and a kill switch."""

    def __init__(self) -> None:
        self.rows: dict[str, UrlMappingRecord] = {}
        self.calls: list[str] = []
        self.available = True
        self._clock = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.available:
            raise StoreUnavailableError()

    async def create(self, short_code: str, long_url: str) -> CreateOutcome:
        self._enter("create")
        if short_code in self.rows:
            return CreateOutcome.CONFLICT_ABSORBED
        self._clock += datetime.timedelta(seconds=1)
        self.rows[short_code] = UrlMappingRecord(
            short_code=short_code, long_url=long_url, created_at=self._clock
        )
        return CreateOutcome.INSERTED

    async def find(self, short_code: str) -> UrlMappingRecord | None:
        self._enter("find")
        return self.rows.get(short_code)

    async def delete(self, short_code: str) -> bool:
        self._enter("delete")
        return self.rows.pop(short_code, None) is not None

    async def list_all(self) -> list[UrlMappingRecord]:
        self._enter("list_all")
        return sorted(self.rows.values(), key=lambda row: row.created_at, reverse=True)

    async def ping(self) -> None:
        self._enter("ping")


class InMemoryFastCache(FastCache):
    """Dict-backed cache that records TTLs instead of expiring entries."""

    def __init__(self) -> None:
        self.entries: dict[str, tuple[str, int]] = {}
        self.calls: list[str] = []
        self.available = True
        self.fail_writes = False

    async def get(self, key: str) -> str | None:
        self.calls.append("get")
        if not self.available:
            raise CacheUnavailableError("connection refused")
        entry = self.entries.get(key)
        return entry[0] if entry else None

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        self.calls.append("set_with_ttl")
        if not self.available or self.fail_writes:
            raise CacheUnavailableError("connection refused")
        self.entries[key] = (value, ttl_seconds)

    async def ping(self) -> None:
        self.calls.append("ping")
        if not self.available:
            raise CacheUnavailableError("connection refused")

    def expire_all(self) -> None:
        self.entries.clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        BASE_URL=BASE_URL,
        REDIS_URL="redis://unused:6379/0",
        METRICS_ENABLED=False,
        CACHE_TTL_SECONDS=3600,
        RATE_LIMIT_REQUESTS=1000,
        RATE_LIMIT_PERIOD_SECONDS=1.0,
        RATE_LIMIT_QUEUE_SIZE=100,
        RATE_LIMIT_WAIT_SECONDS=1.0,
    )


@pytest.fixture
def store() -> InMemoryMappingStore:
    return InMemoryMappingStore()


@pytest.fixture
def cache() -> InMemoryFastCache:
    return InMemoryFastCache()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shorturl.tests")


@pytest.fixture
def service(store, cache, logger, settings) -> ResolutionService:
    return ResolutionService(
        store=store,
        cache=cache,
        logger=logger,
        cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
        cache_key_prefix=settings.CACHE_KEY_PREFIX,
    )


def make_context(settings, store, cache, logger, gate: AdmissionGate | None = None) -> AppContext:
    gate = gate or AdmissionGate(
        capacity=settings.RATE_LIMIT_REQUESTS,
        period_seconds=settings.RATE_LIMIT_PERIOD_SECONDS,
        queue_size=settings.RATE_LIMIT_QUEUE_SIZE,
        max_wait_seconds=settings.RATE_LIMIT_WAIT_SECONDS,
    )
    return AppContext(settings=settings, store=store, cache=cache, gate=gate, logger=logger)


@pytest.fixture
def app_context(settings, store, cache, logger) -> AppContext:
    return make_context(settings, store, cache, logger)


@pytest_asyncio.fixture(scope="function")
async def client(app_context: AppContext) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(context=app_context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def context_factory(settings, store, cache, logger):
    def factory(gate: AdmissionGate | None = None, cache_enabled: bool = True) -> AppContext:
        return make_context(settings, store, cache if cache_enabled else None, logger, gate)

    return factory
