"""
Query builder - typed requests in, Elasticsearch request bodies out.
Challenge: Keyword, exact-term and range clauses, three facet shapes, four sort strategies.
Design: Pure functions over plain dicts; the registry is injected, never imported globally.
"""

import logging
import re
from collections.abc import Sequence
from typing import Any

from dpla_api.core.errors import QueryCompilationError
from dpla_api.fields.registry import FieldRegistry
from dpla_api.schemas.search import DistanceSort, FieldQuery, FieldSort, Filter, RandomParams, SearchParams

logger = logging.getLogger(__name__)

# Fields searched by `q`, with static boosts
KEYWORD_QUERY_FIELDS = (
    "dataProvider.name^1",
    "intermediateProvider^1",
    "provider.name^1",
    "sourceResource.collection.description^1",
    "sourceResource.collection.title^1",
    "sourceResource.contributor^1",
    "sourceResource.creator^1",
    "sourceResource.description^0.75",
    "sourceResource.extent^1",
    "sourceResource.format^1",
    "sourceResource.language.name^1",
    "sourceResource.publisher^1",
    "sourceResource.relation^1",
    "sourceResource.rights^1",
    "sourceResource.spatial.country^0.75",
    "sourceResource.spatial.county^1",
    "sourceResource.spatial.name^1",
    "sourceResource.spatial.region^1",
    "sourceResource.spatial.state^0.75",
    "sourceResource.specType^1",
    "sourceResource.subject.name^1",
    "sourceResource.subtitle^2",
    "sourceResource.title^2",
    "sourceResource.type^1",
)

# Storage order: fastest, but meaningless
DISK_SORT = ["_doc"]
DEFAULT_SORT = ["_score", "_doc"]

GEO_BUCKET_WIDTH = 100
GEO_BUCKET_LIMIT = 2000
GEO_OPEN_BUCKET_FROM = 2100

_AND = re.compile(r"\s+AND\s+")
_OR = re.compile(r"\s+OR\s+")
_QUOTED = re.compile(r'^"[^"]*"$')


def page_from(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def keyword_query(q: str, fields: Sequence[str]) -> dict[str, Any]:
    """
    A general keyword query on the given fields.
    query_string is case-insensitive and analyzes the search term.
    """
    return {
        "query_string": {
            "fields": list(fields),
            "query": q,
            "analyze_wildcard": True,
            "default_operator": "AND",
            "lenient": True,
        }
    }


def strip_quotes(value: str) -> str:
    """Strip one pair of surrounding quotation marks, only if there are none inside."""
    if _QUOTED.fullmatch(value):
        return value[1:-1]
    return value


def split_terms(value: str) -> list[str]:
    """Split an exact-match value on AND, then OR, into bare terms."""
    terms = []
    for part in _AND.split(strip_quotes(value.strip())):
        for term in _OR.split(part):
            terms.append(strip_quotes(term.strip()))
    return terms


class QueryBuilder:
    """Compiles validated requests into Elasticsearch request bodies."""

    def __init__(self, registry: FieldRegistry, keyword_fields: Sequence[str] = KEYWORD_QUERY_FIELDS):
        self.registry = registry
        self.keyword_fields = tuple(keyword_fields)

    # --- request kinds ---

    def compose_search_query(self, params: SearchParams) -> dict[str, Any]:
        return {
            "from": page_from(params.page, params.page_size),
            "size": params.page_size,
            "query": self.query(params),
            "aggs": self.aggs(params.facets, params.facet_size),
            "sort": self.sort(params),
            "_source": self.source(params.fields),
            "track_total_hits": True,
        }

    def compose_multi_fetch_query(self, ids: Sequence[str]) -> dict[str, Any]:
        id_path = self.registry.identifier_field.backend_path
        return {
            "from": 0,
            "size": len(ids),
            "query": {"terms": {id_path: list(ids)}},
            "sort": [{id_path: {"order": "asc"}}],
        }

    def compose_random_query(self, params: RandomParams) -> dict[str, Any]:
        # boost_mode "sum" keeps a filtered random query from returning the same doc every time
        function_score: dict[str, Any] = {"random_score": {}, "boost_mode": "sum"}
        if params.filter:
            function_score["query"] = {"bool": {"filter": self.filter_query(params.filter)}}
        return {"query": {"function_score": function_score}, "size": 1}

    # --- query ---

    def query(self, params: SearchParams) -> dict[str, Any]:
        clauses: list[dict[str, Any]] = []
        if params.q:
            clauses.append(keyword_query(params.q, self.keyword_fields))
        for field_query in params.field_queries:
            clauses.extend(self.single_field_query(field_query, params.exact_field_match))

        if not clauses and not params.filter:
            return {"match_all": {}}

        bool_query: dict[str, Any] = {}
        if clauses:
            if params.op == "OR":
                bool_query["should"] = clauses
                bool_query["minimum_should_match"] = 1
            else:
                bool_query["must"] = clauses
        if params.filter:
            bool_query["filter"] = self.filter_query(params.filter)
        return {"bool": bool_query}

    def single_field_query(self, field_query: FieldQuery, exact_field_match: bool) -> list[dict[str, Any]]:
        """
        Range query for `.before`/`.after` fields, term queries in exact-match mode,
        otherwise a keyword query on the field.
        term is case-sensitive and does not analyze the value, so it only makes sense
        on non-analyzed (keyword) paths.
        """
        name = field_query.field_name
        if name.endswith(".before"):
            return [self.range_query(field_query, "lte")]
        if name.endswith(".after"):
            return [self.range_query(field_query, "gte")]
        if exact_field_match:
            path = self._resolve(self.registry.exact_match_path(name), name)
            return [{"term": {path: term}} for term in split_terms(field_query.value)]
        path = self._resolve(self.registry.backend_path(name), name)
        return [keyword_query(field_query.value, [path])]

    def range_query(self, field_query: FieldQuery, bound: str) -> dict[str, Any]:
        path = self._resolve(self.registry.backend_path(field_query.field_name), field_query.field_name)
        return {"range": {path: {bound: field_query.value}}}

    def filter_query(self, filters: Sequence[Filter]) -> dict[str, Any]:
        """Filters out non-matching docs without affecting the score of matching ones."""
        must = []
        for f in filters:
            path = self._resolve(self.registry.backend_path(f.field_name), f.field_name)
            must.append({"term": {path: f.value}})
        return {"bool": {"must": must}}

    # --- aggregations ---

    def aggs(self, facets: Sequence[str] | None, facet_size: int) -> dict[str, Any]:
        """One aggregation per facet, keyed by the facet name as requested."""
        if not facets:
            return {}
        coordinates = self.registry.coordinates_field
        date_fields = set(self.registry.date_fields)
        aggs: dict[str, Any] = {}
        for facet in facets:
            name, _, origin = facet.partition(":")
            if name == coordinates.name and origin:
                aggs[facet] = self.geo_distance_agg(coordinates.backend_path, origin)
            elif facet in date_fields:
                aggs[facet] = self.date_histogram_agg(facet)
            else:
                path = self._resolve(self.registry.exact_match_path(facet), facet)
                aggs[facet] = {"terms": {"field": path, "size": facet_size}}
        return aggs

    @staticmethod
    def geo_distance_agg(path: str, origin: str) -> dict[str, Any]:
        ranges: list[dict[str, Any]] = [
            {"from": start, "to": start + GEO_BUCKET_WIDTH}
            for start in range(0, GEO_BUCKET_LIMIT, GEO_BUCKET_WIDTH)
        ]
        ranges.append({"from": GEO_OPEN_BUCKET_FROM})
        return {
            "geo_distance": {
                "field": path,
                # "lat:lon" and "lat,lon" are both accepted
                "origin": origin.replace(":", ","),
                "unit": "mi",
                "ranges": ranges,
            }
        }

    def date_histogram_agg(self, facet: str) -> dict[str, Any]:
        path = self._resolve(self.registry.backend_path(facet), facet)
        by_month = facet.rsplit(".", 1)[-1] == "month"
        return {
            "filter": {
                "range": {
                    path: {"gte": "now-416y" if by_month else "now-2000y", "lte": "now"},
                }
            },
            "aggs": {
                "facet": {
                    "date_histogram": {
                        "field": path,
                        "calendar_interval": "month" if by_month else "year",
                        "format": "yyyy-MM" if by_month else "yyyy",
                        "min_doc_count": 1,
                        "order": {"_key": "desc"},
                    }
                }
            },
        }

    # --- sort / projection ---

    def sort(self, params: SearchParams) -> list[Any]:
        sort_spec = params.sort
        if isinstance(sort_spec, DistanceSort):
            path = self._resolve(self.registry.backend_path(sort_spec.field), sort_spec.field)
            return [
                {"_geo_distance": {path: sort_spec.pin, "order": "asc", "unit": "mi"}},
                "_score",
                "_doc",
            ]
        if isinstance(sort_spec, FieldSort):
            path = self.registry.non_analyzed_path(sort_spec.field)
            if path:
                return [{path: {"order": sort_spec.order}}, "_score", "_doc"]
        if not params.q and not params.field_queries:
            return list(DISK_SORT)
        return list(DEFAULT_SORT)

    def source(self, fields: Sequence[str] | None) -> list[str]:
        if not fields:
            return ["*"]
        return [self._resolve(self.registry.backend_path(f), f) for f in fields]

    @staticmethod
    def _resolve(path: str | None, field_name: str) -> str:
        if path is None:
            logger.error("No backend path for validated field %r", field_name)
            raise QueryCompilationError(f"Unrecognized field name: {field_name}")
        return path
