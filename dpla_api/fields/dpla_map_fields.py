"""
DPLA MAP field definitions for the item index.
Public names follow the DPLA Metadata Application Profile; backend paths follow the
Elasticsearch mapping, where analyzed text fields carry a `.not_analyzed` keyword
subfield for sorting, terms facets and exact matching.
"""

from functools import lru_cache

from dpla_api.fields.registry import FieldDescriptor, FieldRegistry, FieldType

COORDINATES_FIELD = "sourceResource.spatial.coordinates"
IDENTIFIER_FIELD = "id"


def _text(
    name: str,
    *,
    path: str | None = None,
    sortable: bool = False,
    facetable: bool = False,
    keyword: bool = True,
) -> FieldDescriptor:
    path = path or name
    not_analyzed = f"{path}.not_analyzed" if keyword else None
    return FieldDescriptor(
        name=name,
        backend_path=path,
        exact_match_path=not_analyzed,
        non_analyzed_path=not_analyzed,
        type=FieldType.TEXT,
        searchable=True,
        sortable=sortable,
        facetable=facetable,
    )


def _url(name: str, *, facetable: bool = False) -> FieldDescriptor:
    # URLs are indexed as keywords, so the backend path is already exact
    return FieldDescriptor(
        name=name,
        backend_path=name,
        exact_match_path=name,
        non_analyzed_path=name,
        type=FieldType.URL,
        searchable=True,
        facetable=facetable,
    )


def _date(name: str, *, path: str | None = None, **flags) -> FieldDescriptor:
    path = path or name
    return FieldDescriptor(
        name=name,
        backend_path=path,
        exact_match_path=path,
        non_analyzed_path=path,
        type=FieldType.DATE,
        **flags,
    )


def _date_family(prefix: str) -> list[FieldDescriptor]:
    """A date with begin/end values, year/month facets and before/after range queries."""
    fields = []
    for bound in ("begin", "end"):
        path = f"{prefix}.{bound}"
        fields.append(_date(path, searchable=True, sortable=True, facetable=True))
        for granularity in ("year", "month"):
            fields.append(
                _date(f"{path}.{granularity}", path=path, facetable=True, retrievable=False)
            )
    # Overlap semantics: the item's range starts before / ends after the given date
    fields.append(_date(f"{prefix}.before", path=f"{prefix}.begin", searchable=True, retrievable=False))
    fields.append(_date(f"{prefix}.after", path=f"{prefix}.end", searchable=True, retrievable=False))
    return fields


DPLA_MAP_FIELDS: list[FieldDescriptor] = [
    _url("@id"),
    FieldDescriptor(
        name=IDENTIFIER_FIELD,
        backend_path="id",
        exact_match_path="id",
        non_analyzed_path="id",
        searchable=True,
        sortable=True,
    ),
    _text("dataProvider", path="dataProvider.name", sortable=True, facetable=True),
    _url("dataProvider.@id", facetable=True),
    _text("dataProvider.name", sortable=True, facetable=True),
    _url("dataProvider.exactMatch"),
    _url("hasView.@id"),
    _text("hasView.format", facetable=True),
    _text("intermediateProvider", sortable=True, facetable=True),
    _url("isShownAt"),
    _url("object"),
    _url("provider.@id", facetable=True),
    _text("provider.name", sortable=True, facetable=True),
    _url("rights", facetable=True),
    _text("rightsCategory", facetable=True),
    _url("sourceResource.collection.@id", facetable=True),
    _text("sourceResource.collection.description", keyword=False),
    _text("sourceResource.collection.title", sortable=True, facetable=True),
    _text("sourceResource.contributor", sortable=True, facetable=True),
    _text("sourceResource.creator", sortable=True, facetable=True),
    *_date_family("sourceResource.date"),
    _text("sourceResource.date.displayDate", sortable=True),
    _text("sourceResource.description", keyword=False),
    _text("sourceResource.extent", facetable=True),
    _text("sourceResource.format", sortable=True, facetable=True),
    _text("sourceResource.genre", facetable=True),
    _text("sourceResource.identifier"),
    _text("sourceResource.language.iso639_3", facetable=True),
    _text("sourceResource.language.name", sortable=True, facetable=True),
    _text("sourceResource.publisher", sortable=True, facetable=True),
    _text("sourceResource.relation", keyword=False),
    _text("sourceResource.rights", keyword=False),
    FieldDescriptor(
        name="sourceResource.spatial",
        backend_path="sourceResource.spatial.*",
        type=FieldType.WILDCARD,
        searchable=True,
    ),
    _text("sourceResource.spatial.city", sortable=True, facetable=True),
    FieldDescriptor(
        name=COORDINATES_FIELD,
        backend_path=COORDINATES_FIELD,
        type=FieldType.COORDINATES,
        searchable=True,
        sortable=True,
    ),
    _text("sourceResource.spatial.country", sortable=True, facetable=True),
    _text("sourceResource.spatial.county", sortable=True, facetable=True),
    _text("sourceResource.spatial.name", sortable=True, facetable=True),
    _text("sourceResource.spatial.region", sortable=True, facetable=True),
    _text("sourceResource.spatial.state", sortable=True, facetable=True),
    _text("sourceResource.specType", sortable=True, facetable=True),
    _url("sourceResource.subject.@id", facetable=True),
    _text("sourceResource.subject.name", sortable=True, facetable=True),
    _text("sourceResource.subtitle", sortable=True, facetable=True),
    *_date_family("sourceResource.temporal"),
    _text("sourceResource.title", sortable=True),
    _text("sourceResource.type", sortable=True, facetable=True),
    # Whole objects, only useful for `fields`
    FieldDescriptor(name="sourceResource", backend_path="sourceResource"),
    FieldDescriptor(name="originalRecord", backend_path="originalRecord"),
]


@lru_cache
def get_field_registry() -> FieldRegistry:
    """Process-wide registry, built on first use."""
    return FieldRegistry(
        DPLA_MAP_FIELDS,
        coordinates_field=COORDINATES_FIELD,
        identifier_field=IDENTIFIER_FIELD,
    )
