"""
Parameter validator tests - defaults, per-type rules, cross-field rules, request kinds.
"""

import pytest

from dpla_api.core.errors import InvalidParameter, TooManyIdentifiers, UnrecognizedParameters
from dpla_api.schemas.search import FieldQuery, Filter, SearchParams
from dpla_api.services.param_validator import ParamValidator

from conftest import ITEM_ID, OTHER_ITEM_ID

COORDS = "sourceResource.spatial.coordinates"


def test_defaults_when_no_params(validator):
    """Absent control parameters get their defaults."""
    params = validator.search_params({})
    assert params == SearchParams(
        exact_field_match=False,
        facet_size=50,
        field_queries=[],
        op="AND",
        page=1,
        page_size=10,
        sort_order="asc",
    )
    assert params.q is None
    assert params.facets is None
    assert params.fields is None
    assert params.filter is None
    assert params.sort is None


def test_scenario_q_page_page_size(validator):
    params = validator.search_params({"q": "cats", "page": "2", "page_size": "10"})
    assert params.q == "cats"
    assert params.page == 2
    assert params.page_size == 10
    assert params.op == "AND"
    assert params.sort_order == "asc"
    assert params.facet_size == 50
    assert params.exact_field_match is False


def test_unrecognized_params_lists_exactly_the_extra_keys(validator):
    with pytest.raises(UnrecognizedParameters) as exc:
        validator.search_params({"q": "cats", "foo": "1", "api_key": "x"})
    assert exc.value.params == "foo, api_key"
    assert exc.value.message == "Unrecognized parameters: foo, api_key"
    assert exc.value.status_code == 400


def test_field_queries_follow_registry_order(validator):
    params = validator.search_params(
        {"sourceResource.title": "maps", "dataProvider": "Boston Public Library"}
    )
    assert params.field_queries == [
        FieldQuery(field_name="dataProvider", value="Boston Public Library"),
        FieldQuery(field_name="sourceResource.title", value="maps"),
    ]


def test_empty_value_counts_as_absent(validator):
    params = validator.search_params({"q": "", "page": ""})
    assert params.q is None
    assert params.page == 1


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"q": "a"}, "q must be between 2 and 200 characters"),
        ({"q": "a" * 201}, "q must be between 2 and 200 characters"),
        ({"exact_field_match": "yes"}, "exact_field_match must be 'true' or 'false'"),
        ({"op": "and"}, "op must be 'AND' or 'OR'"),
        ({"sort_order": "up"}, "sort_order must be 'asc' or 'desc'"),
        ({"page": "0"}, "page must be an integer between 1 and 100"),
        ({"page": "101"}, "page must be an integer between 1 and 100"),
        ({"page": "2x"}, "page must be an integer between 1 and 100"),
        ({"facet_size": "2001"}, "facet_size must be an integer between 0 and 2000"),
        ({"page_size": "501"}, "page_size must be an integer between 0 and 500"),
        ({"sourceResource.date.before": "19th century"},
         "sourceResource.date.before must be in the form YYYY or YYYY-MM or YYYY-MM-DD"),
        ({"isShownAt": "not a url"}, "isShownAt must be a valid URL"),
    ],
)
def test_invalid_values(validator, raw, message):
    """Present-but-invalid values are errors, never silently defaulted."""
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params(raw)
    assert exc.value.rule == message
    assert exc.value.message == f"Invalid parameter: {message}"


def test_page_size_bound_is_configurable(registry):
    validator = ParamValidator(registry, max_page_size=2)
    assert validator.search_params({"page_size": "2"}).page_size == 2
    assert validator.search_params({"page_size": "0"}).page_size == 0
    with pytest.raises(InvalidParameter):
        validator.search_params({"page_size": "3"})


@pytest.mark.parametrize("value", ["1900", "1900-05", "1900-05-17"])
def test_valid_dates(validator, value):
    params = validator.search_params({"sourceResource.date.after": value})
    assert params.field_queries == [FieldQuery(field_name="sourceResource.date.after", value=value)]


def test_date_must_match_whole_value(validator):
    with pytest.raises(InvalidParameter):
        validator.search_params({"sourceResource.date.after": "in 1900"})


def test_quoted_url_keeps_quotes(validator):
    url = '"http://dp.la/item/123"'
    params = validator.search_params({"isShownAt": url})
    assert params.field_queries[0].value == url


def test_facets_accept_facetable_spatial_and_ignore_list(validator):
    params = validator.search_params(
        {"facets": f"provider.name,sourceResource.subtitle,{COORDS}:42.3:-71.1,sourceResource.date.begin.year"}
    )
    assert params.facets == ["provider.name", f"{COORDS}:42.3:-71.1", "sourceResource.date.begin.year"]


def test_facets_reject_unknown_field(validator):
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params({"facets": "provider.name,sourceResource.description"})
    assert exc.value.rule == "'sourceResource.description' is not an allowable value for 'facets'"


def test_facets_only_ignored_fields_means_no_facets(validator):
    assert validator.search_params({"facets": "sourceResource.subtitle"}).facets is None


def test_fields_use_all_fields_set(validator):
    params = validator.search_params({"fields": "id,sourceResource.title,sourceResource,sourceResource.subtitle"})
    assert params.fields == ["id", "sourceResource.title", "sourceResource"]
    with pytest.raises(InvalidParameter):
        validator.search_params({"fields": "sourceResource.date.before"})


def test_filter_produces_one_filter_per_value(validator):
    params = validator.search_params({"filter": "provider.name:Smithsonian AND Digital Commonwealth"})
    assert params.filter == [
        Filter(field_name="provider.name", value="Smithsonian"),
        Filter(field_name="provider.name", value="Digital Commonwealth"),
    ]


def test_filter_keeps_colons_in_value(validator):
    params = validator.search_params({"filter": "isShownAt:http://example.org/a"})
    assert params.filter == [Filter(field_name="isShownAt", value="http://example.org/a")]


@pytest.mark.parametrize(
    "expression, message",
    [
        ("provider.name", "provider.name is not a valid filter"),
        ("nope:value", "nope is not a valid filter field"),
        ("provider.name:x", "provider.name must be between 2 and 200 characters"),
    ],
)
def test_invalid_filter(validator, expression, message):
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params({"filter": expression})
    assert exc.value.rule == message


def test_sort_by_regular_field(validator):
    params = validator.search_params({"sort_by": "sourceResource.title", "sort_order": "desc"})
    assert params.sort_by == "sourceResource.title"
    assert params.sort.field == "sourceResource.title"
    assert params.sort.order == "desc"


def test_sort_by_must_be_sortable(validator):
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params({"sort_by": "sourceResource.description"})
    assert exc.value.rule == "'sourceResource.description' is not an allowable value for sort_by"


def test_sort_by_coordinates_requires_pin(validator):
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params({"sort_by": COORDS})
    assert exc.value.rule == "The sort_by_pin parameter is required."


def test_sort_by_pin_requires_coordinates_sort(validator):
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params({"sort_by_pin": "42.3,-71.1"})
    assert exc.value.rule == "The sort_by parameter is required."
    with pytest.raises(InvalidParameter):
        validator.search_params({"sort_by": "sourceResource.title", "sort_by_pin": "42.3,-71.1"})


def test_sort_by_coordinates_with_pin(validator):
    params = validator.search_params({"sort_by": COORDS, "sort_by_pin": "42.3,-71.1"})
    assert params.sort.pin == "42.3,-71.1"
    assert params.sort.field == COORDS


def test_model_enforces_sort_pin_pairing(registry):
    context = {"coordinates_field": registry.coordinates_field.name}
    with pytest.raises(ValueError):
        SearchParams.model_validate({"sort_by": COORDS}, context=context)
    with pytest.raises(ValueError):
        SearchParams.model_validate(
            {"sort_by": "sourceResource.title", "sort_by_pin": "42.3,-71.1"}, context=context
        )
    with pytest.raises(ValueError):
        SearchParams(sort_by_pin="42.3,-71.1")


def test_model_without_registry_context_only_checks_pin_needs_sort_by():
    assert SearchParams(sort_by=COORDS).sort.field == COORDS
    params = SearchParams(sort_by="other.coordinates", sort_by_pin="42.3,-71.1")
    assert params.sort.pin == "42.3,-71.1"


def test_pairing_follows_registry_coordinates_field():
    context = {"coordinates_field": "place.location"}
    params = SearchParams.model_validate(
        {"sort_by": "place.location", "sort_by_pin": "1,2"}, context=context
    )
    assert params.sort.field == "place.location"
    with pytest.raises(ValueError):
        SearchParams.model_validate({"sort_by": "place.location"}, context=context)


def test_revalidating_serialized_params_is_idempotent(validator):
    raw = {
        "q": "cats",
        "dataProvider": "Boston Public Library",
        "exact_field_match": "true",
        "facets": "provider.name,sourceResource.type",
        "facet_size": "20",
        "fields": "id,sourceResource.title",
        "filter": "sourceResource.type:image AND text",
        "op": "OR",
        "page": "3",
        "page_size": "25",
        "sort_by": COORDS,
        "sort_by_pin": "42.3,-71.1",
    }
    params = validator.search_params(raw)
    assert validator.search_params(params.to_raw_params()) == params


def test_fetch_ids(validator):
    assert validator.fetch_ids(f"{ITEM_ID},{OTHER_ITEM_ID}", {}) == [ITEM_ID, OTHER_ITEM_ID]


def test_fetch_rejects_any_param(validator):
    with pytest.raises(UnrecognizedParameters) as exc:
        validator.fetch_ids(ITEM_ID, {"fields": "id", "page": "1"})
    assert exc.value.params == "fields, page"


def test_fetch_too_many_ids(registry):
    validator = ParamValidator(registry, max_page_size=2)
    with pytest.raises(TooManyIdentifiers) as exc:
        validator.fetch_ids(",".join([ITEM_ID] * 3), {})
    assert exc.value.message == "The number of ids cannot exceed 2"
    assert exc.value.status_code == 400


@pytest.mark.parametrize("bad_id", ["abc", "a" * 33, "a" * 31 + "-"])
def test_fetch_invalid_id(validator, bad_id):
    with pytest.raises(InvalidParameter) as exc:
        validator.fetch_ids(f"{ITEM_ID},{bad_id}", {})
    assert "32 characters long" in exc.value.message


def test_random_params(validator):
    assert validator.random_params({}).filter is None
    params = validator.random_params({"filter": "sourceResource.type:image"})
    assert params.filter == [Filter(field_name="sourceResource.type", value="image")]


def test_random_rejects_other_params(validator):
    with pytest.raises(UnrecognizedParameters) as exc:
        validator.random_params({"filter": "sourceResource.type:image", "q": "cats"})
    assert exc.value.params == "q"


def test_random_invalid_filter(validator):
    with pytest.raises(InvalidParameter):
        validator.random_params({"filter": "no-colon-here"})


@pytest.mark.parametrize(
    "field, value",
    [
        ("sourceResource.description", "maps"),
        ("sourceResource.rights", "public domain"),
        (COORDS, "42.3,-71.1"),
        ("sourceResource.spatial", "Boston"),
    ],
)
def test_exact_match_rejected_for_field_without_exact_path(validator, field, value):
    with pytest.raises(InvalidParameter) as exc:
        validator.search_params({field: value, "exact_field_match": "true"})
    assert exc.value.message == f"Invalid parameter: {field} does not support exact_field_match"


def test_same_fields_accepted_without_exact_match(validator):
    params = validator.search_params({"sourceResource.description": "maps", "exact_field_match": "false"})
    assert params.field_queries == [FieldQuery(field_name="sourceResource.description", value="maps")]


def test_ranged_date_fields_allowed_in_exact_match_mode(validator):
    params = validator.search_params({"sourceResource.date.before": "1900", "exact_field_match": "true"})
    assert params.field_queries[0].field_name == "sourceResource.date.before"
