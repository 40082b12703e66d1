"""FastAPI route definitions for the URL shortener REST API.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/500

    GET    /shorten
        └─ list[UrlDetailResponse] (200) or 500

    GET    /:short_code
        └─ 308 Redirect or 400/404/500

    GET    /:short_code/detail
        └─ UrlDetailResponse (200) or 400/404

    DELETE /:short_code
        └─ MessageResponse (200) or 400/404

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Admission   │──full──► 429
    │ gate        │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Resolution  │──error──► exception handler ──► 4xx/5xx JSON
    │ Service     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serialize   │
    │ Response    │
    └─────────────┘

Key Behaviours
===============
- Every endpoint except /health sits behind the admission gate.
- Service errors are translated to HTTP by the handlers in ``shorturl.main``;
  routes never build error responses themselves.
- /health is declared on its own router and included first so it is never
  captured by the ``/{short_code}`` route.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from shorturl.dependencies import RequestContext, admit, get_request_context, get_resolution_service
from shorturl.enums import HealthStatus
from shorturl.exceptions import ShortenerError
from shorturl.schemas import (
    HealthResponse,
    MessageResponse,
    ShortenRequest,
    ShortenResponse,
    UrlDetailResponse,
    UrlMappingRecord,
)
from shorturl.service import ResolutionService

__all__ = ["health_router", "router"]

health_router = APIRouter()
router = APIRouter(dependencies=[Depends(admit)])


def _detail_response(ctx: RequestContext, record: UrlMappingRecord) -> UrlDetailResponse:
    return UrlDetailResponse(
        short_code=record.short_code,
        short_url=ctx.settings.short_url_for(record.short_code),
        long_url=record.long_url,
        created_at=record.created_at,
    )


@health_router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.app.store.ping()
    except ShortenerError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if ctx.app.cache is None:
        cache_status = HealthStatus.DISABLED
    else:
        try:
            await ctx.app.cache.ping()
        except ShortenerError as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    # the cache is advisory, so only the store decides overall health
    status = HealthStatus.HEALTHY if db_status is HealthStatus.HEALTHY else HealthStatus.UNHEALTHY
    return HealthResponse(
        status=status,
        version=ctx.settings.APP_VERSION,
        database=db_status,
        cache=cache_status,
    )


@router.post("/shorten", response_model=ShortenResponse, status_code=201, tags=["urls"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> ShortenResponse:
    result = await service.create(payload.long_url)
    short_url = ctx.settings.short_url_for(result.short_code)
    ctx.logger.info(
        f"Created short URL: {short_url} (operation=create, duration_ms={ctx.get_duration():.2f})"
    )
    return ShortenResponse(short_code=result.short_code, short_url=short_url, long_url=result.long_url)


@router.get("/shorten", response_model=list[UrlDetailResponse], tags=["urls"])
async def list_short_urls(
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> list[UrlDetailResponse]:
    records = await service.list_mappings()
    return [_detail_response(ctx, record) for record in records]


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> RedirectResponse:
    long_url = await service.resolve(short_code)
    ctx.logger.info(
        f"Redirecting {short_code} -> {long_url} (operation=redirect, duration_ms={ctx.get_duration():.2f})"
    )
    return RedirectResponse(url=long_url, status_code=308)


@router.get("/{short_code}/detail", response_model=UrlDetailResponse, tags=["admin"])
async def get_short_url_detail(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> UrlDetailResponse:
    record = await service.detail(short_code)
    return _detail_response(ctx, record)


@router.delete("/{short_code}", response_model=MessageResponse, tags=["admin"])
async def delete_short_url(
    short_code: str,
    service: ResolutionService = Depends(get_resolution_service),
) -> MessageResponse:
    await service.delete(short_code)
    return MessageResponse(message="short url deleted successfully")
