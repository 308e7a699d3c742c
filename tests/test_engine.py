import itertools
from dataclasses import replace

import pytest

from product_search.domain import (
    Candidate,
    FilterOperator,
    NumericRange,
    ParameterFilter,
    ProductStatus,
    SearchMode,
    SearchRequest,
    SortDirection,
    SortKey,
)
from product_search.engine import SearchEngine
from product_search.errors import InvalidQueryError, SearchTimeoutError
from product_search.importer import build_catalog
from product_search.snapshot import CatalogSnapshot


@pytest.fixture
def engine():
    return SearchEngine()


def _ids(outcome):
    return [result.candidate_id for result in outcome.results]


def test_query_matches_any_field_ordered_by_score_then_id(engine, snapshot):
    outcome = engine.search(SearchRequest(query="ssd"), snapshot)

    assert _ids(outcome) == [104, 105, 101, 102]
    assert outcome.total == 4
    assert outcome.max_score == 2.0
    assert outcome.processed_query == "ssd"
    assert outcome.corrected_query is None


def test_filters_only_request_with_facets(engine, snapshot):
    request = SearchRequest(
        price=NumericRange(50, 200),
        category_ids=frozenset([3, 7]),
        faceted=True,
    )

    outcome = engine.search(request, snapshot)

    assert _ids(outcome) == [104, 110]
    categories = {bucket.value: bucket.count for bucket in outcome.facets.categories}
    assert categories == {"3": 1, "7": 1, "9": 1}
    prices = {bucket.label: bucket.count for bucket in outcome.facets.price_ranges}
    assert prices["1000 - 2000"] == 2
    assert prices["0 - 50"] == 1


def test_facet_count_equals_results_when_value_selected(engine, snapshot):
    request = SearchRequest(price=NumericRange(50, 200), category_ids=frozenset([3, 7]), faceted=True)
    outcome = engine.search(request, snapshot)

    for bucket in outcome.facets.categories:
        narrowed = engine.search(
            SearchRequest(price=NumericRange(50, 200), category_ids=frozenset([int(bucket.value)])),
            snapshot,
        )
        assert narrowed.total == bucket.count


def test_misspelled_query_is_corrected_and_rerun(engine, snapshot):
    outcome = engine.search(SearchRequest(query="lenovo laptp"), snapshot)

    assert outcome.corrected_query == "laptop"
    assert outcome.original_query == "lenovo laptp"
    assert outcome.processed_query == "laptop"
    assert set(_ids(outcome)) == {101, 102, 103, 110}
    assert outcome.suggestions


def test_no_correction_without_close_term(engine, snapshot):
    outcome = engine.search(SearchRequest(query="zzzzzzzz"), snapshot)

    assert outcome.total == 0
    assert outcome.corrected_query is None


def test_parameter_operator_and_is_subset_of_or(engine, snapshot):
    def run(operator):
        parameter_filter = ParameterFilter(parameter_id=1, option_ids=frozenset([10, 11]), operator=operator)
        return set(_ids(engine.search(SearchRequest(parameter_filters=(parameter_filter,)), snapshot)))

    any_of = run(FilterOperator.OR)
    all_of = run(FilterOperator.AND)

    assert any_of == {101, 102}
    assert all_of == {102}


def test_facets_absent_unless_requested(engine, snapshot):
    assert engine.search(SearchRequest(query="laptop"), snapshot).facets is None


def test_category_order_does_not_change_results(engine, snapshot):
    forward = engine.search(SearchRequest(category_ids=frozenset([3, 7])), snapshot)
    backward = engine.search(SearchRequest(category_ids=frozenset([7, 3])), snapshot)

    assert _ids(forward) == _ids(backward)


def test_pages_partition_the_full_ordering(engine, snapshot):
    request = SearchRequest(sort_by=SortKey.PRICE, sort_direction=SortDirection.ASC, size=3)
    full = _ids(engine.search(SearchRequest(sort_by=SortKey.PRICE, sort_direction=SortDirection.ASC, size=100), snapshot))

    first = engine.search(request, snapshot)
    pages = [_ids(engine.search(replace(request, page=page), snapshot)) for page in range(first.total_pages)]

    assert first.total_pages == 3
    assert list(itertools.chain.from_iterable(pages)) == full
    assert _ids(engine.search(request, snapshot)) == _ids(first)
    assert engine.search(replace(request, page=9), snapshot).results == ()


def test_exact_model_lookup(engine, snapshot):
    request = SearchRequest(field_queries={"model": "E14"}, exact_match=True, mode=SearchMode.SPECIFIC_FIELDS)

    outcome = engine.search(request, snapshot)

    assert _ids(outcome) == [101]
    assert outcome.searched_fields == ("model",)


def test_smart_mode_is_stable(engine, snapshot):
    request = SearchRequest(query="ssd", mode=SearchMode.SMART)

    first = engine.search(request, snapshot)
    second = engine.search(request, snapshot)

    assert _ids(first) == _ids(second) == [105, 104, 101, 102]
    assert [result.score for result in first.results] == [result.score for result in second.results]


def test_bulgarian_query_matches_localized_and_fallback_names(engine, snapshot):
    outcome = engine.search(SearchRequest(query="лаптоп", language="bg"), snapshot)

    assert set(_ids(outcome)) == {101, 102, 103, 110}


def test_invalid_paging_is_rejected(engine, snapshot):
    with pytest.raises(InvalidQueryError):
        engine.search(SearchRequest(size=0), snapshot)
    with pytest.raises(InvalidQueryError):
        engine.search(SearchRequest(page=-1), snapshot)


def test_deadline_expiry_raises_timeout(snapshot):
    ticks = itertools.count()
    engine = SearchEngine(clock=lambda: float(next(ticks)))

    with pytest.raises(SearchTimeoutError):
        engine.search(SearchRequest(query="ssd", timeout_ms=500), snapshot)


def test_grouped_suggestions(engine, snapshot):
    grouped = engine.suggest(snapshot, "len", "en", 5)

    assert grouped.groups["manufacturers"] == ("Lenovo",)
    assert "Lenovo IdeaPad 3 Laptop" in grouped.groups["productNames"]
    assert grouped.keywords[0] == "lenovo"


def test_grouped_suggestions_reject_short_prefix(engine, snapshot):
    with pytest.raises(InvalidQueryError):
        engine.suggest(snapshot, "l", "en", 5)


def test_status_code_zero_filters_as_not_available(engine):
    catalog = build_catalog([
        {"id": 1, "nameEn": "Old drive", "status": 0},
        {"id": 2, "nameEn": "New drive", "status": 1},
    ])
    snapshot = CatalogSnapshot(1, catalog.candidates, catalog.labels)

    outcome = engine.search(SearchRequest(statuses=frozenset({ProductStatus.NOT_AVAILABLE})), snapshot)

    assert outcome.total == 1
    assert _ids(outcome) == [1]


def test_candidate_failing_at_search_time_is_skipped(engine):
    snapshot = CatalogSnapshot(
        1,
        [
            Candidate(id=1, names={"en": "ssd one"}, price=10.0),
            Candidate(id=2, names={"en": "ssd two"}, price="cheap"),
            Candidate(id=3, names={"en": "ssd three"}, price=30.0),
        ],
    )

    outcome = engine.search(SearchRequest(query="ssd", price=NumericRange(0, 100)), snapshot)

    assert _ids(outcome) == [1, 3]
    assert outcome.skipped == 1
