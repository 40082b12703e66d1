"""End-to-end checks against real PostgreSQL and Redis.

Run with ``SHORTURL_INTEGRATION=1 pytest -m integration`` after
``DATABASE_URL`` and ``REDIS_URL`` point at disposable instances.
"""

import os
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from shorturl.config import Settings
from shorturl.dependencies import AppContext
from shorturl.main import create_app

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        os.environ.get("SHORTURL_INTEGRATION") != "1",
        reason="set SHORTURL_INTEGRATION=1 to run against live backends",
    ),
]


@pytest.mark.asyncio
async def test_create_resolve_delete_roundtrip() -> None:
    ctx = AppContext.from_settings(Settings(METRICS_ENABLED=False))
    await ctx.startup()
    app = create_app(context=ctx)
    long_url = f"https://example.com/{uuid.uuid4()}"

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            created = await ac.post("/shorten", json={"long_url": long_url})
            assert created.status_code == 201
            short_code = created.json()["short_code"]

            again = await ac.post("/shorten", json={"long_url": long_url})
            assert again.json()["short_code"] == short_code

            redirect = await ac.get(f"/{short_code}", follow_redirects=False)
            assert redirect.status_code == 308
            assert redirect.headers["location"] == long_url
            if ctx.cache is not None:
                assert await ctx.cache.get(f"url:{short_code}") == long_url

            detail = await ac.get(f"/{short_code}/detail")
            assert detail.json()["long_url"] == long_url

            assert (await ac.delete(f"/{short_code}")).status_code == 200
            assert (await ac.get(f"/{short_code}/detail")).status_code == 404
    finally:
        await ctx.close()
