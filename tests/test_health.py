"""Health endpoint tests."""

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from catchfeed import redis_client


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    """GET /health returns 200 with healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness_degraded_without_cache_store(client: AsyncClient) -> None:
    """Database reachable, Redis never initialized: degraded but still 200."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["cache"].startswith("error")
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    """GET /version returns version and environment."""
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "0.1.0"
    assert "environment" in data


@pytest.mark.asyncio
async def test_readiness_ready_with_cache_store(client: AsyncClient, monkeypatch) -> None:
    """Both stores answer: ready."""

    class PingingStore:
        async def ping(self) -> bool:
            return True

    monkeypatch.setattr(redis_client, "_pool", PingingStore())
    response = await client.get("/ready")
    assert response.json() == {"status": "ready", "checks": {"database": "ok", "cache": "ok"}}


@pytest.mark.asyncio
async def test_cache_store_status_reports_connection_error(monkeypatch) -> None:
    class DownStore:
        async def ping(self) -> bool:
            raise RedisConnectionError("connection refused")

    monkeypatch.setattr(redis_client, "_pool", DownStore())
    assert await redis_client.cache_store_status() == "error: connection refused"
