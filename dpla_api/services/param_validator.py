"""
Parameter validator - untyped query parameters in, typed request models out.
Challenge: Many interacting rules (defaults, ranges, field types, sort/pin pairing).
Design: First violation raises; defaults apply only to absent parameters.
"""

import logging
import re
from collections.abc import Callable, Mapping
from typing import TypeVar

from pydantic import AnyUrl, TypeAdapter, ValidationError

from dpla_api.core.errors import InvalidParameter, TooManyIdentifiers, UnrecognizedParameters
from dpla_api.fields.registry import FieldRegistry, FieldType
from dpla_api.schemas.search import (
    DEFAULT_FACET_SIZE,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    Filter,
    FieldQuery,
    RandomParams,
    SearchParams,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTROL_PARAMS = (
    "exact_field_match",
    "facets",
    "facet_size",
    "fields",
    "filter",
    "op",
    "page",
    "page_size",
    "q",
    "sort_by",
    "sort_by_pin",
    "sort_order",
)

# Checked before the accepted lists, which may also contain them
IGNORED_FIELDS = frozenset({"sourceResource.subtitle"})

MIN_FACET_SIZE, MAX_FACET_SIZE = 0, 2000
MIN_PAGE, MAX_PAGE = 1, 100
MIN_PAGE_SIZE = 0
MIN_TEXT_LENGTH, MAX_TEXT_LENGTH = 2, 200

ID_PATTERN = re.compile(r"^[A-Za-z0-9]{32}$")
DATE_PATTERN = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?$")
INT_PATTERN = re.compile(r"^[+-]?\d+$")
FILTER_VALUE_SEPARATOR = re.compile(r"\s+AND\s+")

_url_adapter = TypeAdapter(AnyUrl)

Rule = Callable[[str, str], T]


class ParamValidationFailed(ValueError):
    """A single rule violation; carries the human-readable rule."""


def valid_text(text: str, param: str) -> str:
    """Must be a string between 2 and 200 characters."""
    if not MIN_TEXT_LENGTH <= len(text) <= MAX_TEXT_LENGTH:
        raise ParamValidationFailed(
            f"{param} must be between {MIN_TEXT_LENGTH} and {MAX_TEXT_LENGTH} characters"
        )
    return text


def valid_date(text: str, param: str) -> str:
    if DATE_PATTERN.fullmatch(text):
        return text
    raise ParamValidationFailed(f"{param} must be in the form YYYY or YYYY-MM or YYYY-MM-DD")


def valid_url(url: str, param: str) -> str:
    """Quotes around the URL are allowed and kept in the returned value."""
    clean = url
    if len(url) >= 2 and url.startswith('"') and url.endswith('"'):
        clean = url[1:-1]
    try:
        _url_adapter.validate_python(clean)
    except ValidationError:
        raise ParamValidationFailed(f"{param} must be a valid URL") from None
    return url


def valid_boolean(text: str, param: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise ParamValidationFailed(f"{param} must be 'true' or 'false'")


def valid_and_or(text: str, param: str) -> str:
    if text in ("AND", "OR"):
        return text
    raise ParamValidationFailed(f"{param} must be 'AND' or 'OR'")


def valid_sort_order(text: str, param: str) -> str:
    if text in ("asc", "desc"):
        return text
    raise ParamValidationFailed(f"{param} must be 'asc' or 'desc'")


def int_in_range(minimum: int, maximum: int) -> Rule[int]:
    def rule(text: str, param: str) -> int:
        message = f"{param} must be an integer between {minimum} and {maximum}"
        if not INT_PATTERN.fullmatch(text):
            raise ParamValidationFailed(message)
        parsed = int(text)
        if parsed < minimum or parsed > maximum:
            raise ParamValidationFailed(message)
        return parsed

    return rule


def valid_id(item_id: str) -> str:
    if ID_PATTERN.fullmatch(item_id):
        return item_id
    raise ParamValidationFailed(
        "ID must be a String comprised of letters and numbers, and 32 characters long"
    )


class ParamValidator:
    """Validates raw parameter maps against a field registry."""

    def __init__(self, registry: FieldRegistry, max_page_size: int):
        self.registry = registry
        self.max_page_size = max_page_size
        self.accepted_search_params = frozenset(registry.searchable_fields) | frozenset(CONTROL_PARAMS)
        self._page_size_rule = int_in_range(MIN_PAGE_SIZE, max_page_size)
        self._facet_size_rule = int_in_range(MIN_FACET_SIZE, MAX_FACET_SIZE)
        self._page_rule = int_in_range(MIN_PAGE, MAX_PAGE)

    # --- request kinds ---

    def search_params(self, raw: Mapping[str, str]) -> SearchParams:
        """Validate a search request. Raises UnrecognizedParameters or InvalidParameter."""
        unrecognized = [key for key in raw if key not in self.accepted_search_params]
        if unrecognized:
            raise UnrecognizedParameters(", ".join(unrecognized))

        try:
            params = {
                "exact_field_match": self._get(raw, "exact_field_match", valid_boolean, False),
                "facets": self._get(raw, "facets", self._valid_facets),
                "facet_size": self._get(raw, "facet_size", self._facet_size_rule, DEFAULT_FACET_SIZE),
                "fields": self._get(raw, "fields", self._valid_fields),
                "field_queries": self._field_queries(raw),
                "filter": self._filter(raw),
                "op": self._get(raw, "op", valid_and_or, "AND"),
                "page": self._get(raw, "page", self._page_rule, DEFAULT_PAGE),
                "page_size": self._get(raw, "page_size", self._page_size_rule, DEFAULT_PAGE_SIZE),
                "q": self._get(raw, "q", valid_text),
                "sort_by": self._sort_by(raw),
                "sort_by_pin": self._sort_by_pin(raw),
                "sort_order": self._get(raw, "sort_order", valid_sort_order, "asc"),
            }
            if params["exact_field_match"]:
                self._check_exact_match(params["field_queries"])
            return SearchParams.model_validate(
                params, context={"coordinates_field": self.registry.coordinates_field.name}
            )
        except ParamValidationFailed as e:
            logger.info("Rejected search parameters: %s", e)
            raise InvalidParameter(str(e)) from None
        except ValidationError as e:
            logger.info("Rejected search parameters: %s", e)
            raise InvalidParameter(_first_error(e)) from None

    def fetch_ids(self, id_path: str, raw: Mapping[str, str]) -> list[str]:
        """Validate a comma-separated id path. No query parameters are recognized."""
        if raw:
            raise UnrecognizedParameters(", ".join(raw))
        ids = id_path.split(",")
        if len(ids) > self.max_page_size:
            raise TooManyIdentifiers(f"The number of ids cannot exceed {self.max_page_size}")
        try:
            return [valid_id(item_id) for item_id in ids]
        except ParamValidationFailed as e:
            logger.info("Rejected fetch ids %r: %s", id_path, e)
            raise InvalidParameter(str(e)) from None

    def random_params(self, raw: Mapping[str, str]) -> RandomParams:
        unrecognized = [key for key in raw if key != "filter"]
        if unrecognized:
            raise UnrecognizedParameters(", ".join(unrecognized))
        try:
            return RandomParams(filter=self._filter(raw))
        except ParamValidationFailed as e:
            logger.info("Rejected random parameters: %s", e)
            raise InvalidParameter(str(e)) from None

    # --- helpers ---

    @staticmethod
    def _get(raw: Mapping[str, str], param: str, rule: Rule[T], default: T | None = None) -> T | None:
        # An empty value counts as absent
        value = raw.get(param)
        if not value:
            return default
        return rule(value, param)

    def _value_rule(self, field_name: str) -> Rule[str]:
        field_type = self.registry.type_of(field_name)
        if field_type is None:
            raise ParamValidationFailed(f"Unrecognized parameter: {field_name}")
        if field_type is FieldType.URL:
            return valid_url
        if field_type is FieldType.DATE:
            return valid_date
        return valid_text

    def _field_queries(self, raw: Mapping[str, str]) -> list[FieldQuery]:
        queries = []
        for name in self.registry.searchable_fields:
            value = self._get(raw, name, self._value_rule(name))
            if value is not None:
                queries.append(FieldQuery(field_name=name, value=value))
        return queries

    def _check_exact_match(self, queries: list[FieldQuery]) -> None:
        """Exact matching needs a non-analyzed path; ranged fields stay range queries."""
        for query in queries:
            name = query.field_name
            if name.endswith((".before", ".after")):
                continue
            if self.registry.exact_match_path(name) is None:
                raise ParamValidationFailed(f"{name} does not support exact_field_match")

    def _filter(self, raw: Mapping[str, str]) -> list[Filter] | None:
        """Parse `<field>:<v1> AND <v2> ...` into one Filter per value."""
        expression = raw.get("filter")
        if not expression:
            return None
        field_name, sep, values = expression.partition(":")
        if not sep:
            raise ParamValidationFailed(f"{expression} is not a valid filter")
        if not self.registry.is_searchable(field_name):
            raise ParamValidationFailed(f"{field_name} is not a valid filter field")
        rule = self._value_rule(field_name)
        return [
            Filter(field_name=field_name, value=rule(value.strip(), field_name))
            for value in FILTER_VALUE_SEPARATOR.split(values.strip())
        ]

    def _valid_field_list(self, text: str, param: str, accepted: Callable[[str], bool]) -> list[str] | None:
        result = []
        for candidate in text.split(","):
            if candidate in IGNORED_FIELDS:
                continue
            if accepted(candidate):
                result.append(candidate)
            else:
                raise ParamValidationFailed(f"'{candidate}' is not an allowable value for '{param}'")
        return result or None

    def _valid_facets(self, text: str, param: str) -> list[str] | None:
        coordinates = self.registry.coordinates_field.name

        def accepted(candidate: str) -> bool:
            if self.registry.is_facetable(candidate):
                return True
            name, sep, origin = candidate.partition(":")
            return name == coordinates and bool(sep) and bool(origin)

        return self._valid_field_list(text, param, accepted)

    def _valid_fields(self, text: str, param: str) -> list[str] | None:
        return self._valid_field_list(text, param, self.registry.is_retrievable)

    def _sort_by(self, raw: Mapping[str, str]) -> str | None:
        """Must be sortable; the coordinates field also needs sort_by_pin."""
        sort_by = raw.get("sort_by")
        if not sort_by:
            return None
        if not self.registry.is_sortable(sort_by):
            raise ParamValidationFailed(f"'{sort_by}' is not an allowable value for sort_by")
        if sort_by == self.registry.coordinates_field.name and not raw.get("sort_by_pin"):
            raise ParamValidationFailed("The sort_by_pin parameter is required.")
        return sort_by

    def _sort_by_pin(self, raw: Mapping[str, str]) -> str | None:
        pin = raw.get("sort_by_pin")
        if not pin:
            return None
        pin = valid_text(pin, "sort_by_pin")
        if raw.get("sort_by") != self.registry.coordinates_field.name:
            raise ParamValidationFailed("The sort_by parameter is required.")
        return pin


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    message = errors[0]["msg"]
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")
