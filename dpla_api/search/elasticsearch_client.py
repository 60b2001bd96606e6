"""
Elasticsearch client - the search backend behind every request.
Challenge: One shared async client, auth from URL, backend errors surfaced as BackendFailure.
"""

import logging
from typing import Any
from urllib.parse import urlparse

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from dpla_api.config import Settings, get_settings
from dpla_api.core.errors import BackendFailure

logger = logging.getLogger(__name__)

_es_client: AsyncElasticsearch | None = None

# Request body keys that the client takes under a different keyword
_BODY_KWARGS = {"from": "from_", "_source": "source"}


def _es_client_options(settings: Settings) -> dict:
    """Build Elasticsearch client options from settings (supports HTTPS + basic auth in URL)."""
    url = settings.elasticsearch_url
    basic_auth = None
    parsed = urlparse(url)
    if parsed.username and parsed.password:
        basic_auth = (parsed.username, parsed.password)
        # Remove auth from URL for the client (it uses basic_auth separately)
        netloc = parsed.hostname or ""
        if parsed.port:
            netloc += f":{parsed.port}"
        url = f"{parsed.scheme}://{netloc}"
    opts = {
        "hosts": [url],
        "verify_certs": settings.elasticsearch_verify_certs,
        "request_timeout": settings.elasticsearch_request_timeout,
        "max_retries": settings.elasticsearch_max_retries,
        "retry_on_timeout": True,
    }
    if basic_auth:
        opts["basic_auth"] = basic_auth
    return opts


async def get_elasticsearch() -> AsyncElasticsearch:
    """Get Elasticsearch client. Dependency injection for tests."""
    global _es_client
    if _es_client is None:
        _es_client = AsyncElasticsearch(**_es_client_options(get_settings()))
    return _es_client


async def close_elasticsearch() -> None:
    global _es_client
    if _es_client is not None:
        await _es_client.close()
        _es_client = None


def search_kwargs(body: dict[str, Any]) -> dict[str, Any]:
    """Turn a request body into keyword arguments for AsyncElasticsearch.search."""
    return {_BODY_KWARGS.get(key, key): value for key, value in body.items()}


async def run_search(es: AsyncElasticsearch, index: str, body: dict[str, Any]) -> dict[str, Any]:
    """Execute one search. Any backend error becomes BackendFailure; nothing is retried here."""
    try:
        response = await es.search(index=index, **search_kwargs(body))
    except (ApiError, TransportError) as e:
        logger.warning("Elasticsearch search failed: index=%s error=%s", index, e)
        raise BackendFailure() from e
    # Response may be ObjectApiResponse; support both .body and dict access
    return getattr(response, "body", response)
