"""
FastAPI dependencies - injection for settings, field registry, Elasticsearch and the search service.
Challenge: Build the pipeline per request from process-wide, read-only collaborators.
"""

from typing import Annotated

from elasticsearch import AsyncElasticsearch
from fastapi import Depends, Request

from dpla_api.config import Settings, get_settings
from dpla_api.fields.dpla_map_fields import get_field_registry
from dpla_api.fields.registry import FieldRegistry
from dpla_api.search.elasticsearch_client import get_elasticsearch
from dpla_api.services.param_validator import ParamValidator
from dpla_api.services.query_builder import QueryBuilder
from dpla_api.services.search_service import SearchService


def get_search_service(
    settings: Annotated[Settings, Depends(get_settings)],
    registry: Annotated[FieldRegistry, Depends(get_field_registry)],
    es: Annotated[AsyncElasticsearch, Depends(get_elasticsearch)],
) -> SearchService:
    """Factory for service with collaborator injection (Dependency Inversion)."""
    return SearchService(
        ParamValidator(registry, max_page_size=settings.max_page_size),
        QueryBuilder(registry),
        es,
        settings.items_index,
    )


def get_raw_params(request: Request) -> dict[str, str]:
    """Flatten the query string; repeated parameters keep their first value."""
    raw: dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        raw.setdefault(key, value)
    return raw


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]
RawParams = Annotated[dict[str, str], Depends(get_raw_params)]
