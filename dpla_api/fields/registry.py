"""
Field registry - public field names and how they map onto the search index.
Challenge: One read-only lookup table shared by validation and query building.
Design: Immutable value built once at startup and injected, never a mutable global.
"""

from collections.abc import Iterable
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict


class FieldType(str, Enum):
    """Type classification; decides which value rule applies to a field."""

    TEXT = "text"
    URL = "url"
    DATE = "date"
    WILDCARD = "wildcard"
    COORDINATES = "coordinates"


class FieldDescriptor(BaseModel):
    """One registry entry."""

    model_config = ConfigDict(frozen=True)

    name: str
    backend_path: str
    exact_match_path: str | None = None
    non_analyzed_path: str | None = None
    type: FieldType = FieldType.TEXT
    searchable: bool = False
    sortable: bool = False
    facetable: bool = False
    retrievable: bool = True


class FieldRegistry:
    """Lookups by public field name. Keeps registration order for searchable fields."""

    def __init__(
        self,
        fields: Iterable[FieldDescriptor],
        coordinates_field: str,
        identifier_field: str = "id",
    ):
        by_name: dict[str, FieldDescriptor] = {}
        for field in fields:
            if field.name in by_name:
                raise ValueError(f"Duplicate field name in registry: {field.name}")
            by_name[field.name] = field
        if coordinates_field not in by_name:
            raise ValueError(f"Coordinates field {coordinates_field} is not registered")
        if identifier_field not in by_name:
            raise ValueError(f"Identifier field {identifier_field} is not registered")

        self._fields = MappingProxyType(by_name)
        self._coordinates_field = coordinates_field
        self._identifier_field = identifier_field

    def get(self, name: str) -> FieldDescriptor | None:
        return self._fields.get(name)

    def type_of(self, name: str) -> FieldType | None:
        field = self._fields.get(name)
        return field.type if field else None

    def backend_path(self, name: str) -> str | None:
        field = self._fields.get(name)
        return field.backend_path if field else None

    def exact_match_path(self, name: str) -> str | None:
        """Path for term queries; falls back to the non-analyzed path."""
        field = self._fields.get(name)
        if field is None:
            return None
        return field.exact_match_path or field.non_analyzed_path

    def non_analyzed_path(self, name: str) -> str | None:
        field = self._fields.get(name)
        return field.non_analyzed_path if field else None

    def is_known(self, name: str) -> bool:
        return name in self._fields

    def is_searchable(self, name: str) -> bool:
        field = self._fields.get(name)
        return bool(field and field.searchable)

    def is_sortable(self, name: str) -> bool:
        field = self._fields.get(name)
        return bool(field and field.sortable)

    def is_facetable(self, name: str) -> bool:
        field = self._fields.get(name)
        return bool(field and field.facetable)

    def is_retrievable(self, name: str) -> bool:
        field = self._fields.get(name)
        return bool(field and field.retrievable)

    @property
    def searchable_fields(self) -> list[str]:
        return [f.name for f in self._fields.values() if f.searchable]

    @property
    def coordinates_field(self) -> FieldDescriptor:
        return self._fields[self._coordinates_field]

    @property
    def identifier_field(self) -> FieldDescriptor:
        return self._fields[self._identifier_field]

    @property
    def date_fields(self) -> list[str]:
        return [f.name for f in self._fields.values() if f.type is FieldType.DATE]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)
