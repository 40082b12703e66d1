"""FastAPI application entry point for the URL shortener service.

This module configures the FastAPI application with middleware, error
translation, lifecycle management and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_app()│
    │ middleware, │
    │ handlers,   │
    │ routes      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ AppContext  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ ctx.close() │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn shorturl.main:app --host 0.0.0.0 --port 8080

    # or, honouring SERVER_ADDRESS
    python -m shorturl

**Step 2 — Make API calls**::
    curl http://localhost:8080/health

    curl -X POST http://localhost:8080/shorten \\
         -H "Content-Type: application/json" \\
         -d '{"long_url": "https://example.com/a"}'

Key Behaviours
===============
- ``create_app(context=...)`` accepts a prebuilt context; the lifespan then
  leaves its lifecycle to the caller. Tests use this to inject fakes.
- Service errors map to JSON ``{"error": ...}`` bodies with their status code.
- Malformed bodies are reported as 400, not FastAPI's default 422. A body
  sent without a JSON Content-Type gets its own message.
- CORS is permissive and responses are gzip-compressed.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shorturl.config import Settings, get_settings
from shorturl.dependencies import AppContext
from shorturl.exceptions import AdmissionRejectedError, ShortenerError
from shorturl.middleware import LoggingMiddleware
from shorturl.routes import health_router, router


async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    headers = None
    if isinstance(exc, AdmissionRejectedError):
        headers = {"Retry-After": str(max(1, round(exc.retry_after)))}
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


def _is_json_content_type(value: str | None) -> bool:
    if not value:
        return False
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or (
        media_type.startswith("application/") and media_type.endswith("+json")
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    body_errors = any(error.get("loc") and error["loc"][0] == "body" for error in errors)
    if body_errors and not _is_json_content_type(request.headers.get("content-type")):
        message = "Expected 'Content-Type: application/json' header"
    elif any(error.get("type") == "json_invalid" for error in errors):
        message = "JSON syntax error"
    else:
        message = "JSON data structure mismatch"
    return JSONResponse(status_code=400, content={"error": message})


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    settings = settings or (context.settings if context else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if context is not None:
            yield
            return

        app_ctx = AppContext.from_settings(settings)
        app.state.context = app_ctx
        await app_ctx.startup()
        try:
            yield
        finally:
            await app_ctx.close()

    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Deterministic URL shortener with a cache-aside read path",
        lifespan=lifespan,
    )
    if context is not None:
        application.state.context = context

    application.add_exception_handler(ShortenerError, shortener_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)

    application.add_middleware(GZipMiddleware, minimum_size=1000)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(LoggingMiddleware)

    application.include_router(health_router)
    if settings.METRICS_ENABLED:
        # /metrics must be registered before the catch-all /{short_code} route
        Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=False,
            should_respect_env_var=False,
        ).instrument(application).expose(application)
    application.include_router(router)

    return application


app = create_app()
