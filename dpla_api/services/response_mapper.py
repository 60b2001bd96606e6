"""
Response mapper - Elasticsearch results into the public DocList envelope.
Challenge: Dotted-path projection over documents whose values may be lists or objects.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from dpla_api.schemas.search import Bucket, DocList, Facet, SearchParams

_MISSING = object()

BUCKET_LABELS = {
    "terms": "terms",
    "geo_distance": "ranges",
    "date_histogram": "entries",
}


def map_search_response(response: Mapping[str, Any], params: SearchParams | None = None) -> DocList:
    """
    Without params (fetch by ids) count is the backend total.
    With params count is the number of docs on this page, and start/limit echo the paging.
    """
    hits = response["hits"]
    docs = [hit.get("_source", {}) for hit in hits["hits"]]

    if params is None:
        return DocList(count=total_hits(hits), docs=docs)

    if params.fields:
        docs = [project(doc, params.fields) for doc in docs]

    return DocList(
        count=len(docs),
        start=(params.page - 1) * params.page_size + 1,
        limit=params.page_size,
        docs=docs,
        facets=map_facets(response.get("aggregations"), params.facets),
    )


def total_hits(hits: Mapping[str, Any]) -> int:
    total = hits.get("total")
    if isinstance(total, Mapping):
        return total.get("value", len(hits["hits"]))
    if isinstance(total, int):
        return total
    return len(hits["hits"])


def project(doc: Mapping[str, Any], fields: Sequence[str]) -> dict[str, Any]:
    projected = {}
    for field in fields:
        value = read_path(doc, field.split("."))
        if value is not _MISSING:
            projected[field] = value
    return projected


def read_path(parent: Any, path: Sequence[str]) -> Any:
    """
    Follow path through nested objects. Single-element lists are unwrapped,
    longer lists are returned as they are. Scalars only count at the end of the path.
    """
    if not path or not isinstance(parent, Mapping) or path[0] not in parent:
        return _MISSING
    child = parent[path[0]]
    rest = path[1:]

    if isinstance(child, list):
        if len(child) != 1:
            return child
        child = child[0]

    if child is None:
        return _MISSING
    if isinstance(child, Mapping):
        return child if not rest else read_path(child, rest)
    if isinstance(child, (str, int, float, bool)):
        return child if not rest else _MISSING
    return _MISSING


def map_facets(aggregations: Mapping[str, Any] | None, facets: Sequence[str] | None) -> list[Facet] | None:
    if not facets or not aggregations:
        return None
    mapped = []
    for name in facets:
        agg = aggregations.get(name)
        if agg is None:
            continue
        if "facet" in agg:
            # date facets nest their histogram under a range filter
            mapped.append(_facet(name, "date_histogram", agg["facet"]))
        elif name.partition(":")[2]:
            mapped.append(_facet(name.partition(":")[0], "geo_distance", agg))
        else:
            mapped.append(_facet(name, "terms", agg))
    return mapped


def _facet(field: str, agg_type: str, agg: Mapping[str, Any]) -> Facet:
    buckets = [
        Bucket(
            key=b.get("key"),
            key_as_string=b.get("key_as_string"),
            doc_count=b.get("doc_count"),
            from_=b.get("from"),
            to=b.get("to"),
        )
        for b in agg.get("buckets", [])
    ]
    return Facet(field=field, type=agg_type, buckets=buckets, buckets_label=BUCKET_LABELS[agg_type])
