import pytest

from product_search.domain import FilterOperator, NumericRange, ParameterFilter, ProductStatus, SearchRequest
from product_search.errors import InvalidQueryError
from product_search.filters import CATEGORY, PRICE, compile_filters


def _matching_ids(snapshot, request):
    compiled = compile_filters(request, snapshot.labels)
    return sorted(candidate.id for candidate in snapshot.candidates if compiled.matches(candidate))


def test_default_filters_hide_inactive_and_invisible(snapshot):
    ids = _matching_ids(snapshot, SearchRequest())

    assert 107 not in ids
    assert 108 not in ids
    assert ids == [101, 102, 103, 104, 105, 106, 109, 110]


def test_include_inactive_lifts_active_predicate(snapshot):
    assert 107 in _matching_ids(snapshot, SearchRequest(include_inactive=True))
    assert _matching_ids(snapshot, SearchRequest(include_inactive=True, active=False)) == [107]


def test_active_false_requires_include_inactive(snapshot):
    with pytest.raises(InvalidQueryError):
        compile_filters(SearchRequest(active=False), snapshot.labels)


def test_price_range_is_inclusive(snapshot):
    request = SearchRequest(price=NumericRange(59.9, 199.0))

    assert _matching_ids(snapshot, request) == [104, 106, 110]


def test_inverted_price_range_is_rejected(snapshot):
    with pytest.raises(InvalidQueryError) as excinfo:
        compile_filters(SearchRequest(price=NumericRange(200, 50)), snapshot.labels)

    assert str(excinfo.value) == "Minimum price (200) cannot be greater than maximum price (50)"


def test_categories_are_ored_and_order_independent(snapshot):
    forward = _matching_ids(snapshot, SearchRequest(category_ids=frozenset([3, 7])))
    backward = _matching_ids(snapshot, SearchRequest(category_ids=frozenset([7, 3])))

    assert forward == backward == [101, 102, 103, 104, 105, 110]


def test_manufacturer_by_id_or_name(snapshot):
    by_id = _matching_ids(snapshot, SearchRequest(manufacturer_ids=frozenset([3])))
    by_name = _matching_ids(snapshot, SearchRequest(manufacturer_names=frozenset(["DELL"])))

    assert by_id == by_name == [103, 109]


def test_status_and_flag_filters(snapshot):
    limited = SearchRequest(statuses=frozenset([ProductStatus.LIMITED_QUANTITY]))
    on_sale = SearchRequest(on_sale=True)
    featured = SearchRequest(featured=True)

    assert _matching_ids(snapshot, limited) == [102]
    assert _matching_ids(snapshot, on_sale) == [102, 105]
    assert _matching_ids(snapshot, featured) == [101]


def test_missing_attribute_fails_bounded_range(snapshot):
    ids = _matching_ids(snapshot, SearchRequest(weight=NumericRange(maximum=2.0)))

    assert ids == [101, 102, 103, 104]


def test_parameter_filter_or_and_and(snapshot):
    any_of = ParameterFilter(parameter_id=1, option_ids=frozenset([10, 11]))
    all_of = ParameterFilter(parameter_id=1, option_ids=frozenset([10, 11]), operator=FilterOperator.AND)

    either = _matching_ids(snapshot, SearchRequest(parameter_filters=(any_of,)))
    both = _matching_ids(snapshot, SearchRequest(parameter_filters=(all_of,)))

    assert either == [101, 102]
    assert both == [102]
    assert set(both) <= set(either)


def test_parameter_filter_by_name_and_value(snapshot):
    parameter_filter = ParameterFilter(parameter_name="ram", option_values=frozenset(["16 GB"]))

    assert _matching_ids(snapshot, SearchRequest(parameter_filters=(parameter_filter,))) == [101, 102]


def test_parameter_filter_requires_identifier(snapshot):
    with pytest.raises(InvalidQueryError):
        compile_filters(SearchRequest(parameter_filters=(ParameterFilter(option_ids=frozenset([1])),)), snapshot.labels)


def test_failing_dimensions_reports_each_failed_filter(snapshot):
    request = SearchRequest(category_ids=frozenset([3]), price=NumericRange(50, 200))
    compiled = compile_filters(request, snapshot.labels)

    assert compiled.failing_dimensions(snapshot.get(110)) == frozenset()
    assert compiled.failing_dimensions(snapshot.get(104)) == {CATEGORY}
    assert compiled.failing_dimensions(snapshot.get(109)) == {CATEGORY, PRICE}
    assert compiled.matches_except(snapshot.get(104), CATEGORY)
    assert compiled.applied == ("categoryIds=[3]", "price=[50, 200]")
