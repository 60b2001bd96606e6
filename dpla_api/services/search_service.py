"""
Search service - validate, compile, query, map (SOLID: Single Responsibility).
Challenge: Keep endpoints thin; one place where the pipeline stages meet the backend.
Design: Collaborators are injected; tests pass a fake Elasticsearch client.
"""

import logging
from collections.abc import Mapping

from elasticsearch import AsyncElasticsearch

from dpla_api.schemas.search import DocList
from dpla_api.search.elasticsearch_client import run_search
from dpla_api.services.param_validator import ParamValidator
from dpla_api.services.query_builder import QueryBuilder
from dpla_api.services.response_mapper import map_search_response

logger = logging.getLogger(__name__)


class SearchService:
    """Handles the three request kinds: search, fetch by ids, random item."""

    def __init__(
        self,
        validator: ParamValidator,
        builder: QueryBuilder,
        es: AsyncElasticsearch,
        index: str,
    ):
        self.validator = validator
        self.builder = builder
        self.es = es
        self.index = index

    async def search(self, raw_params: Mapping[str, str]) -> DocList:
        params = self.validator.search_params(raw_params)
        query = self.builder.compose_search_query(params)
        logger.debug("Search query: %s", query)
        response = await run_search(self.es, self.index, query)
        return map_search_response(response, params)

    async def fetch(self, id_path: str, raw_params: Mapping[str, str]) -> DocList:
        ids = self.validator.fetch_ids(id_path, raw_params)
        query = self.builder.compose_multi_fetch_query(ids)
        response = await run_search(self.es, self.index, query)
        return map_search_response(response)

    async def random(self, raw_params: Mapping[str, str]) -> DocList:
        params = self.validator.random_params(raw_params)
        query = self.builder.compose_random_query(params)
        response = await run_search(self.es, self.index, query)
        return map_search_response(response)
