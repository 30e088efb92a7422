"""
pytest configuration and shared fixtures for the livedash tests.

Key concern: tests must not need a live upstream stats server, and no
test may see snapshots or stream subscribers left over by another one.
We achieve this by:
  1. Giving every test a fresh Hub (empty cache, no subscribers) whose
     upstream gateway talks to an httpx.MockTransport.
  2. Resetting the slowapi in-memory counters so proxy tests don't trip
     the rate limit for each other.

The mock upstream serves:
  GET /discovery.json            → {"services": [...]}
  GET /<service>/historical.json → list of one-minute records
  anything else                  → 404
Tests that need different upstream behaviour build their own hub with
`make_hub(handler)`.
"""

import os

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

DISCOVERY = {
    "services": [
        {"id": "bbc_one", "type": "tv"},
        {"id": "radio_one", "type": "radio"},
    ]
}


def historical_for(service: str) -> list[dict]:
    return [
        {"channel": service, "timestamp": f"2026-10-17T10:0{minute}:00+00:00", "audience": {"total": 100 + minute}}
        for minute in range(3)
    ]


def upstream_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/discovery.json":
        return httpx.Response(200, json=DISCOVERY)
    if path.endswith("/historical.json"):
        service = path.split("/")[1]
        return httpx.Response(200, json=historical_for(service))
    return httpx.Response(404, json={"error": "not found"})


@pytest.fixture()
def make_hub(monkeypatch):
    """
    Install a fresh Hub whose upstream is served by `handler`.

    Usage:
        def test_something(make_hub):
            hub = make_hub(lambda request: httpx.Response(500))
    """
    import livedash.core.hub as hub_module

    def _install(handler=upstream_handler, **overrides):
        config = hub_module.settings.model_copy(update=overrides)
        fresh = hub_module.build_hub(config, transport=httpx.MockTransport(handler))
        monkeypatch.setattr(hub_module, "hub", fresh)
        return fresh

    return _install


@pytest.fixture(autouse=True)
def hub(make_hub):
    """Fresh hub for every test; reset rate-limit counters."""
    from livedash.core.rate_limit import limiter

    limiter.reset()
    return make_hub()


@pytest.fixture()
async def client(hub):  # noqa: ARG001 — hub must be installed first
    """
    HTTPX async test client wired to the FastAPI app.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from livedash.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def raw_minute():
    """Factory for a raw upstream one-minute payload."""

    def _build(total=100, change=0, timestamp="2026-10-17T10:00:00+00:00", **fields):
        payload = {
            "timestamp": timestamp,
            "audience": {"total": total, "change": change, "platforms": {}},
        }
        payload.update(fields)
        return payload

    return _build
