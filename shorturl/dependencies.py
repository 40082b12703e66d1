"""Application context and per-request dependency injection.

``AppContext`` holds every shared resource (settings, logger, the store and
cache adapters with their connection pools, the admission gate). It is built
once at startup, stored on ``app.state.context`` and handed to each request
by reference; there are no module-level singletons.

::
    startup ──► AppContext.from_settings() ──► app.state.context
                                                     │
    request ──► get_app_context() ──► RequestContext ─┴─► ResolutionService
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shorturl.config import Settings
from shorturl.database import create_engine, create_session_factory, init_db
from shorturl.gate import AdmissionGate
from shorturl.redis import RedisFastCache, create_redis_client
from shorturl.service import ResolutionService
from shorturl.sql_store import SqlMappingStore
from shorturl.storage import FastCache, MappingStore


# ============================================================================
# APPLICATION CONTEXT
# ============================================================================


def setup_logger(level: str = "INFO") -> logging.Logger:
    """Configure the service logger once."""
    logger = logging.getLogger("shorturl")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger


class AppContext:
    """Shared resources for the lifetime of the process.

    Attributes:
        settings: Loaded configuration
        logger: Service logger
        store: Authoritative mapping store
        cache: Fast cache, or None when caching is disabled
        gate: Admission gate guarding the public entry points
    """

    def __init__(
        self,
        settings: Settings,
        store: MappingStore,
        cache: FastCache | None,
        gate: AdmissionGate,
        logger: logging.Logger | None = None,
        engine: AsyncEngine | None = None,
    ):
        self.settings = settings
        self.store = store
        self.cache = cache
        self.gate = gate
        self.logger = logger or setup_logger(settings.LOG_LEVEL)
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        """Build the PostgreSQL/Redis backed context described by ``settings``."""
        logger = setup_logger(settings.LOG_LEVEL)

        engine = create_engine(settings)
        store = SqlMappingStore(
            create_session_factory(engine),
            timeout_seconds=settings.STORE_TIMEOUT_SECONDS,
            logger=logger,
        )

        cache: FastCache | None = None
        if settings.cache_enabled:
            cache = RedisFastCache(
                create_redis_client(settings),
                timeout_seconds=settings.CACHE_TIMEOUT_SECONDS,
            )
        else:
            logger.warning("REDIS_URL is empty, fast cache disabled")

        return cls(
            settings=settings,
            store=store,
            cache=cache,
            gate=build_gate(settings, logger),
            logger=logger,
            engine=engine,
        )

    async def startup(self) -> None:
        if self._engine is not None and self.settings.AUTO_CREATE_SCHEMA:
            await init_db(self._engine)
        self.logger.info(f"{self.settings.APP_NAME} {self.settings.APP_VERSION} started")

    async def close(self) -> None:
        """Release connection pools at shutdown."""
        if self.cache is not None:
            await self.cache.close()
        await self.store.close()
        if self._engine is not None:
            await self._engine.dispose()


def build_gate(settings: Settings, logger: logging.Logger | None = None) -> AdmissionGate:
    return AdmissionGate(
        capacity=settings.RATE_LIMIT_REQUESTS,
        period_seconds=settings.RATE_LIMIT_PERIOD_SECONDS,
        queue_size=settings.RATE_LIMIT_QUEUE_SIZE,
        max_wait_seconds=settings.RATE_LIMIT_WAIT_SECONDS,
        logger=logger,
    )


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the application context.

    Attributes:
        app: Shared application context
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    app: AppContext
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def settings(self) -> Settings:
        return self.app.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger carrying this request's identifiers."""
        return logging.LoggerAdapter(
            self.app.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_app_context(request: Request) -> AppContext:
    return request.app.state.context


def get_request_context(
    request: Request,
    app_ctx: AppContext = Depends(get_app_context),
) -> RequestContext:
    request_id = request.headers.get("x-request-id") or getattr(request.state, "request_id", None)
    ctx = RequestContext(
        app=app_ctx,
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )
    if request_id:
        ctx.request_id = request_id
    return ctx


def get_resolution_service(ctx: RequestContext = Depends(get_request_context)) -> ResolutionService:
    return ResolutionService.from_context(ctx)


async def admit(app_ctx: AppContext = Depends(get_app_context)) -> None:
    """Router dependency: take a token from the admission gate or reject."""
    await app_ctx.gate.acquire()
