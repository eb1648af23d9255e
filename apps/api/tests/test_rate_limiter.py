"""
Tests for Rate Limiting
=======================
"""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from shuttlecoach.middleware import InMemoryRateLimiter, RateLimitMiddleware


def test_limiter_allows_up_to_limit():
    limiter = InMemoryRateLimiter(requests_per_minute=3, burst_limit=10)
    results = [limiter.is_allowed("client") for _ in range(4)]
    assert [allowed for allowed, _ in results] == [True, True, True, False]
    assert [remaining for _, remaining in results] == [2, 1, 0, 0]


def test_limiter_burst_caps_limit():
    limiter = InMemoryRateLimiter(requests_per_minute=10, burst_limit=2)
    assert limiter.is_allowed("client")[0]
    assert limiter.is_allowed("client")[0]
    assert not limiter.is_allowed("client")[0]


def test_limiter_keys_are_independent():
    limiter = InMemoryRateLimiter(requests_per_minute=1, burst_limit=1)
    assert limiter.is_allowed("a")[0]
    assert limiter.is_allowed("b")[0]
    assert not limiter.is_allowed("a")[0]


def test_limiter_window_expires(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("shuttlecoach.middleware.time.time", lambda: now[0])
    limiter = InMemoryRateLimiter(requests_per_minute=1, burst_limit=1, window_seconds=60)

    assert limiter.is_allowed("client")[0]
    assert not limiter.is_allowed("client")[0]
    now[0] += 61
    assert limiter.is_allowed("client")[0]


def test_cleanup_drops_expired_keys(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("shuttlecoach.middleware.time.time", lambda: now[0])
    limiter = InMemoryRateLimiter(requests_per_minute=5, burst_limit=5, window_seconds=60)
    limiter.is_allowed("client")

    now[0] += 120
    limiter.cleanup()
    assert limiter._requests == {}


@pytest.mark.asyncio
async def test_middleware_returns_429():
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, requests_per_minute=2, burst_limit=2)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        first = await ac.get("/ping")
        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        await ac.get("/ping")

        limited = await ac.get("/ping")
        assert limited.status_code == 429
        assert limited.headers["Retry-After"] == "60"
        assert limited.json()["detail"]["error"] == "rate_limit_exceeded"

        # A different subject has its own budget
        other = await ac.get("/ping", headers={"X-Auth-Subject": "someone"})
        assert other.status_code == 200


def test_idle_keys_swept_once_per_window(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("shuttlecoach.middleware.time.time", lambda: now[0])
    limiter = InMemoryRateLimiter(requests_per_minute=5, burst_limit=5, window_seconds=60)

    for i in range(20):
        limiter.is_allowed(f"subject-{i}")
    assert len(limiter._requests) == 20

    now[0] += 61
    limiter.is_allowed("latest")
    assert list(limiter._requests) == ["latest"]


def _rate_limiter(app: FastAPI) -> InMemoryRateLimiter:
    layer = app.middleware_stack
    while not isinstance(layer, RateLimitMiddleware):
        layer = layer.app
    return layer.limiter


@pytest.mark.asyncio
async def test_middleware_drops_stale_subjects(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("shuttlecoach.middleware.time.time", lambda: now[0])

    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, requests_per_minute=5, burst_limit=5)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        for i in range(50):
            await ac.get("/ping", headers={"X-Auth-Subject": f"subject-{i}"})
        limiter = _rate_limiter(app)
        assert len(limiter._requests) == 50

        now[0] += 3600
        response = await ac.get("/ping", headers={"X-Auth-Subject": "late"})
        assert response.status_code == 200
        assert len(limiter._requests) == 1
