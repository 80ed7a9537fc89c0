from datetime import datetime, timedelta, timezone

import pytest

from adsync import utils
from adsync.auth import resolve_owner, require_device_id
from adsync.config import Settings, normalize_database_url, parse_auth_tokens
from adsync.errors import InvalidInput
from adsync.rate_limit import RateLimiter


def test_retry_gives_up_after_tries(monkeypatch):
    monkeypatch.setattr(utils.time, "sleep", lambda s: None)
    calls = []

    @utils.retry(ValueError, tries=3, delay=1)
    def flaky():
        calls.append(1)
        raise ValueError("boom")

    with pytest.raises(ValueError):
        flaky()
    assert len(calls) == 3


def test_retry_returns_first_success(monkeypatch):
    monkeypatch.setattr(utils.time, "sleep", lambda s: None)
    attempts = iter([ValueError("once"), "ok"])

    @utils.retry(ValueError, tries=3)
    def flaky():
        value = next(attempts)
        if isinstance(value, Exception):
            raise value
        return value

    assert flaky() == "ok"


def test_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert utils.as_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    sao_paulo = timezone(timedelta(hours=-3))
    assert utils.as_utc(datetime(2026, 1, 1, 9, 0, tzinfo=sao_paulo)).hour == 12
    assert utils.as_utc(None) is None
    assert utils.isoformat(naive) == "2026-01-01T12:00:00Z"


def test_rate_limiter_window():
    now = [0.0]
    limiter = RateLimiter(limit=2, window_seconds=60, clock=lambda: now[0])
    assert limiter.allow("a")
    assert limiter.allow("a")
    assert not limiter.allow("a")
    assert limiter.allow("b")
    now[0] = 61.0
    assert limiter.allow("a")


def test_rate_limiter_disabled():
    limiter = RateLimiter(limit=0, window_seconds=60)
    assert all(limiter.allow("a") for _ in range(10))


def test_parse_auth_tokens():
    assert parse_auth_tokens("t1:alice, t2:bob") == {"t1": "alice", "t2": "bob"}
    assert parse_auth_tokens("") == {}
    with pytest.raises(RuntimeError):
        parse_auth_tokens("just-a-token")


def test_resolve_owner():
    tokens = {"t1": "alice", "t2": "bob"}
    assert resolve_owner("t2", tokens) == "bob"
    assert resolve_owner("t3", tokens) is None
    assert resolve_owner(None, tokens) is None


def test_require_device_id():
    assert require_device_id(None, " phone ") == "phone"
    assert require_device_id("body", "header") == "body"
    with pytest.raises(InvalidInput):
        require_device_id(None, "  ")


def test_normalize_database_url():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert normalize_database_url("sqlite://") == "sqlite://"


def test_settings_from_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("POSTGRES_URL", "postgres://u:p@h/db")
    monkeypatch.setenv("AUTH_TOKENS", "t1:alice")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:19006, exp://127.0.0.1:19000")
    monkeypatch.setenv("SCHEDULER_ENABLED", "0")
    monkeypatch.setenv("API_PREFIX", "/api/")

    settings = Settings.from_env()
    assert settings.database_url.startswith("postgresql+psycopg2://")
    assert settings.auth_tokens == {"t1": "alice"}
    assert settings.cors_origins == ["http://localhost:19006", "exp://127.0.0.1:19000"]
    assert settings.scheduler_enabled is False
    assert settings.api_prefix == "/api"
    assert settings.rate_limit_max == 1000


def test_settings_require_database_url(monkeypatch):
    monkeypatch.delenv("POSTGRES_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        Settings.from_env()
