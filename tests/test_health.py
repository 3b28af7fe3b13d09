"""Probe endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_liveness(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness_flags_missing_redis(client: AsyncClient) -> None:
    """The store answers; Redis was never connected, so the service is degraded but up."""
    response = await client.get("/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"] == {"database": "ok", "redis": "error: Redis client is not configured"}


@pytest.mark.asyncio
async def test_version_reports_settings(client: AsyncClient) -> None:
    body = (await client.get("/version")).json()
    assert body == {"version": "0.1.0", "environment": "development"}
