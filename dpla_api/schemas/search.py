"""Search request/response schemas - the typed side of the public API contract."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator

DEFAULT_FACET_SIZE = 50
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10

Op = Literal["AND", "OR"]
SortOrder = Literal["asc", "desc"]


class FieldQuery(BaseModel):
    """A validated condition on one searchable field."""

    model_config = ConfigDict(frozen=True)

    field_name: str
    value: str


class Filter(BaseModel):
    """A validated exact-value constraint; never affects scoring."""

    model_config = ConfigDict(frozen=True)

    field_name: str
    value: str


class FieldSort(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    order: SortOrder = "asc"


class DistanceSort(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    pin: str


SortSpec = FieldSort | DistanceSort | None


class SearchParams(BaseModel):
    """
    Validated search request.

    sort_by names the coordinates field exactly when sort_by_pin is set. The
    coordinates field name comes from the registry through the validation
    context; without it only "a pin needs a sort_by" can be checked.
    """

    exact_field_match: bool = False
    facets: list[str] | None = None
    facet_size: int = DEFAULT_FACET_SIZE
    fields: list[str] | None = None
    field_queries: list[FieldQuery] = Field(default_factory=list)
    filter: list[Filter] | None = None
    op: Op = "AND"
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE
    q: str | None = None
    sort_by: str | None = None
    sort_by_pin: str | None = None
    sort_order: SortOrder = "asc"

    @model_validator(mode="after")
    def _check_sort_pin(self, info: ValidationInfo) -> "SearchParams":
        coordinates = (info.context or {}).get("coordinates_field")
        if self.sort_by_pin is not None:
            if self.sort_by is None or (coordinates is not None and self.sort_by != coordinates):
                raise ValueError("The sort_by parameter is required.")
        elif coordinates is not None and self.sort_by == coordinates:
            raise ValueError("The sort_by_pin parameter is required.")
        return self

    @property
    def sort(self) -> SortSpec:
        if self.sort_by is None:
            return None
        if self.sort_by_pin is not None:
            return DistanceSort(field=self.sort_by, pin=self.sort_by_pin)
        return FieldSort(field=self.sort_by, order=self.sort_order)

    def to_raw_params(self) -> dict[str, str]:
        """Render back into the flat string map accepted by the validator."""
        raw: dict[str, str] = {
            "exact_field_match": "true" if self.exact_field_match else "false",
            "facet_size": str(self.facet_size),
            "op": self.op,
            "page": str(self.page),
            "page_size": str(self.page_size),
            "sort_order": self.sort_order,
        }
        for field_query in self.field_queries:
            raw[field_query.field_name] = field_query.value
        if self.facets:
            raw["facets"] = ",".join(self.facets)
        if self.fields:
            raw["fields"] = ",".join(self.fields)
        if self.filter:
            name = self.filter[0].field_name
            raw["filter"] = f"{name}:" + " AND ".join(f.value for f in self.filter)
        if self.q is not None:
            raw["q"] = self.q
        if self.sort_by is not None:
            raw["sort_by"] = self.sort_by
        if self.sort_by_pin is not None:
            raw["sort_by_pin"] = self.sort_by_pin
        return raw


class RandomParams(BaseModel):
    filter: list[Filter] | None = None


class Bucket(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str | int | float | None = None
    key_as_string: str | None = Field(None, alias="keyAsString")
    doc_count: int | None = Field(None, alias="docCount")
    from_: float | None = Field(None, alias="from")
    to: float | None = None


class Facet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    type: str
    buckets: list[Bucket] = Field(default_factory=list)
    buckets_label: str = Field(alias="bucketsLabel")


class DocList(BaseModel):
    """Public result envelope."""

    count: int | None = None
    start: int | None = None
    limit: int | None = None
    docs: list[Any] = Field(default_factory=list)
    facets: list[Facet] | None = None

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        for key in ("count", "start", "limit"):
            value = getattr(self, key)
            if value is not None:
                body[key] = value
        body["docs"] = self.docs
        if self.facets is not None:
            body["facets"] = [f.model_dump(by_alias=True, exclude_none=True) for f in self.facets]
        return body


class ErrorResponse(BaseModel):
    message: str
    code: int
