"""
Pytest fixtures - field registry, pipeline stages, fake Elasticsearch, HTTP client.
Challenge: Isolated tests; no real Elasticsearch in unit or API tests.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from dpla_api.fields.dpla_map_fields import get_field_registry
from dpla_api.main import app
from dpla_api.search.elasticsearch_client import get_elasticsearch
from dpla_api.services.param_validator import ParamValidator
from dpla_api.services.query_builder import QueryBuilder

ITEM_ID = "a" * 32
OTHER_ITEM_ID = "0123456789abcdef0123456789ABCDEF"


def es_response(docs: list[dict], total: int | None = None, aggregations: dict | None = None) -> dict:
    """Minimal Elasticsearch search response body."""
    body = {
        "took": 1,
        "timed_out": False,
        "hits": {
            "total": {"value": len(docs) if total is None else total, "relation": "eq"},
            "hits": [{"_id": str(i), "_score": 1.0, "_source": doc} for i, doc in enumerate(docs)],
        },
    }
    if aggregations is not None:
        body["aggregations"] = aggregations
    return body


class FakeElasticsearch:
    """Records search calls and returns a canned response (or raises)."""

    def __init__(self, response: dict | None = None, error: Exception | None = None):
        self.response = response if response is not None else es_response([])
        self.error = error
        self.calls: list[dict] = []

    async def search(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response

    async def ping(self) -> bool:
        return self.error is None


@pytest.fixture
def registry():
    return get_field_registry()


@pytest.fixture
def validator(registry) -> ParamValidator:
    return ParamValidator(registry, max_page_size=500)


@pytest.fixture
def builder(registry) -> QueryBuilder:
    return QueryBuilder(registry)


@pytest.fixture
def fake_es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest_asyncio.fixture
async def client(fake_es: FakeElasticsearch):
    app.dependency_overrides[get_elasticsearch] = lambda: fake_es
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
