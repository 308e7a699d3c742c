from dataclasses import replace

from product_search.domain import ScoredResult, SearchMode, SearchRequest, SortDirection, SortKey
from product_search.normalizer import normalize_query
from product_search.ranking import Ranker, build_plan, order_results, paginate, total_pages


def _rank(snapshot, request):
    query = normalize_query(request.query, request.language)
    ranker = Ranker(build_plan(query, request), snapshot, query.language)
    scored = [ranker.score(candidate) for candidate in snapshot.candidates]
    return {result.candidate_id: result for result in scored if result is not None}


def test_all_fields_scores_are_normalized_by_token_count(snapshot):
    results = _rank(snapshot, SearchRequest(query="ssd"))

    assert results[104].score == 2.0
    assert results[101].score == 1.0
    assert results[104].matched_fields == {"name", "description"}


def test_every_token_must_match(snapshot):
    results = _rank(snapshot, SearchRequest(query="lenovo monitor"))

    assert results == {}


def test_specific_fields_only_searches_given_fields(snapshot):
    request = SearchRequest(field_queries={"model": "xps13"}, mode=SearchMode.SPECIFIC_FIELDS)
    plan = build_plan(normalize_query(""), request)

    assert plan.searched_fields == ("model",)
    assert set(_rank(snapshot, request)) == {103}


def test_smart_mode_weights_name_over_description(snapshot):
    results = _rank(snapshot, SearchRequest(query="ssd", mode=SearchMode.SMART))

    # name (3) + description (1); the on-sale flag adds the tie-breaker
    assert results[104].score == 4.0
    assert results[105].score == 4.0 + 0.001
    assert results[101].score == 1.0 + 0.001


def test_smart_mode_boosts_exact_name(snapshot):
    results = _rank(snapshot, SearchRequest(query="Samsung 970 EVO SSD 1TB", mode=SearchMode.SMART))

    assert set(results) == {104}
    assert results[104].score > 3.0 * 2


def test_fuzzy_hits_are_penalized(snapshot):
    exact = _rank(snapshot, SearchRequest(query="samsung"))
    fuzzy = _rank(snapshot, SearchRequest(query="samsng", fuzzy_search=True))

    assert _rank(snapshot, SearchRequest(query="samsng")) == {}
    assert set(fuzzy) == set(exact) == {104, 106, 107}
    assert fuzzy[104].score < exact[104].score


def test_exact_match_compares_whole_values(snapshot):
    request = SearchRequest(field_queries={"model": "E14"}, exact_match=True, mode=SearchMode.SPECIFIC_FIELDS)

    assert set(_rank(snapshot, request)) == {101}
    partial = SearchRequest(field_queries={"model": "E1"}, exact_match=True, mode=SearchMode.SPECIFIC_FIELDS)
    assert _rank(snapshot, partial) == {}


def test_exact_match_with_fuzzy_accepts_near_whole_values(snapshot):
    near = SearchRequest(
        field_queries={"model": "E15"}, exact_match=True, fuzzy_search=True, mode=SearchMode.SPECIFIC_FIELDS
    )
    same = SearchRequest(
        field_queries={"model": "E14"}, exact_match=True, fuzzy_search=True, mode=SearchMode.SPECIFIC_FIELDS
    )

    results = _rank(snapshot, near)
    assert set(results) == {101}
    assert results[101].score == 0.75
    assert _rank(snapshot, same)[101].score == 1.0
    assert _rank(snapshot, replace(near, fuzzy_search=False)) == {}


def test_relevance_ties_break_by_id():
    results = [ScoredResult(5, 1.0), ScoredResult(2, 1.0), ScoredResult(9, 3.0)]

    ordered = order_results(results, SearchRequest(), snapshot=None, language="en")

    assert [result.candidate_id for result in ordered] == [9, 2, 5]


def test_sort_by_price_and_missing_values_last(snapshot):
    results = [ScoredResult(candidate.id, 1.0) for candidate in snapshot.candidates]

    by_price = order_results(results, SearchRequest(sort_by=SortKey.PRICE, sort_direction=SortDirection.ASC), snapshot, "en")
    by_date = order_results(results, SearchRequest(sort_by=SortKey.CREATED_AT), snapshot, "en")

    assert [result.candidate_id for result in by_price][:3] == [105, 110, 108]
    assert [result.candidate_id for result in by_date][-3:] == [107, 108, 109]


def test_pagination_helpers():
    ordered = [ScoredResult(candidate_id, 1.0) for candidate_id in range(7)]

    assert total_pages(7, 3) == 3
    assert total_pages(0, 20) == 0
    assert [result.candidate_id for result in paginate(ordered, 2, 3)] == [6]
    assert paginate(ordered, 5, 3) == ()
