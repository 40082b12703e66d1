"""Settings tests."""

import pytest

from shorturl.codegen import generate_short_code
from shorturl.config import Settings
from shorturl.models import UrlMapping


def test_defaults() -> None:
    settings = Settings(BASE_URL="http://sho.rt")
    assert settings.APP_VERSION == "1.0.0"
    assert settings.CACHE_TTL_SECONDS == 3600
    assert settings.RATE_LIMIT_REQUESTS == 200
    assert settings.RATE_LIMIT_QUEUE_SIZE == 1024
    assert settings.RATE_LIMIT_WAIT_SECONDS == 30.0


def test_base_url_defaults_to_server_address() -> None:
    settings = Settings(BASE_URL="", SERVER_ADDRESS="127.0.0.1:9000")
    assert settings.BASE_URL == "http://127.0.0.1:9000"
    assert settings.bind_host == "127.0.0.1"
    assert settings.bind_port == 9000


def test_base_url_trailing_slash_stripped() -> None:
    settings = Settings(BASE_URL="https://sho.rt/")
    assert settings.short_url_for("4ER7dq2Z") == "https://sho.rt/4ER7dq2Z"


def test_empty_redis_url_disables_cache() -> None:
    assert Settings(BASE_URL="http://sho.rt", REDIS_URL="").cache_enabled is False
    assert Settings(BASE_URL="http://sho.rt", REDIS_URL="redis://localhost:6379/0").cache_enabled is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("BASE_URL", "https://env.example")
    monkeypatch.setenv("METRICS_ENABLED", "false")

    settings = Settings()
    assert settings.CACHE_TTL_SECONDS == 60
    assert settings.BASE_URL == "https://env.example"
    assert settings.METRICS_ENABLED is False


def test_short_code_length_is_fixed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHORT_CODE_LENGTH", "12")
    settings = Settings(BASE_URL="http://sho.rt")

    assert "SHORT_CODE_LENGTH" not in Settings.model_fields
    assert not hasattr(settings, "SHORT_CODE_LENGTH")
    code = generate_short_code("https://example.com/a")
    assert len(code) == UrlMapping.__table__.c.short_code.type.length == 8
