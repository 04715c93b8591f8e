"""Tests for GET /api/health."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert "status" in data
    assert data["database"] == "ok"
    # No key configured in the test environment
    assert data["llm"] == "unconfigured"
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Skills Matrix API"
    assert data["endpoints"]["messages"] == "/api/messages"


@pytest.mark.asyncio
async def test_responses_carry_process_time(client: AsyncClient):
    resp = await client.get("/")
    assert resp.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_api_description_uses_plain_punctuation(client: AsyncClient):
    resp = await client.get("/openapi.json")
    assert resp.status_code == 200
    description = resp.json()["info"]["description"]
    assert description.startswith("**Skills Matrix**: content pipeline")
    assert "—" not in description
