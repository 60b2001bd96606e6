"""
Health endpoint tests - TDD: fast feedback on API availability.
"""

import pytest
from elasticsearch import ConnectionError as ESConnectionError
from httpx import AsyncClient

from conftest import FakeElasticsearch


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    """GET /v2/health returns 200 and status ok."""
    response = await client.get("/v2/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_ready(client: AsyncClient):
    """GET /v2/health/ready returns 200 when Elasticsearch answers."""
    response = await client.get("/v2/health/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_not_ready_without_backend(client: AsyncClient, fake_es: FakeElasticsearch):
    fake_es.error = ESConnectionError("connection refused")
    response = await client.get("/v2/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


@pytest.mark.asyncio
async def test_metrics(client: AsyncClient):
    """Prometheus metrics are exposed at /metrics."""
    response = await client.get("/metrics/")
    assert response.status_code == 200
