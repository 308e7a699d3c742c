from product_search.domain import NumericRange, ParameterFilter, SearchRequest
from product_search.facets import aggregate_facets, price_buckets
from product_search.filters import compile_filters


def _facets(snapshot, request):
    compiled = compile_filters(request, snapshot.labels)
    entries = [(candidate, compiled.failing_dimensions(candidate)) for candidate in snapshot.candidates]
    return aggregate_facets(entries, compiled, snapshot, "en")


def test_price_buckets_are_half_open_with_open_last_bucket():
    buckets = price_buckets([50, 100], [1, 2, 3])

    assert [bucket.label for bucket in buckets] == ["0 - 50", "50 - 100", "100+"]
    assert buckets[0].minimum == 0.0
    assert buckets[0].maximum == 49.99
    assert buckets[1].maximum == 99.99
    assert buckets[2].maximum is None
    assert [bucket.count for bucket in buckets] == [1, 2, 3]


def test_dimension_facets_ignore_their_own_filter(snapshot):
    facets = _facets(snapshot, SearchRequest(category_ids=frozenset([3])))

    counts = {bucket.value: bucket.count for bucket in facets.categories}
    assert counts == {"3": 4, "7": 2, "9": 2}
    manufacturers = {bucket.label: bucket.count for bucket in facets.manufacturers}
    assert manufacturers == {"Lenovo": 3, "Dell": 1}


def test_category_facets_are_labelled_per_language(snapshot):
    compiled = compile_filters(SearchRequest(), snapshot.labels)
    entries = [(candidate, compiled.failing_dimensions(candidate)) for candidate in snapshot.candidates]

    facets = aggregate_facets(entries, compiled, snapshot, "bg")

    assert {bucket.label for bucket in facets.categories} == {"Лаптопи", "Памети", "Монитори"}
    assert {bucket.label for bucket in facets.statuses} >= {"в наличност"}


def test_price_facet_ignores_the_price_filter(snapshot):
    facets = _facets(snapshot, SearchRequest(price=NumericRange(0, 10)))

    counts = {bucket.label: bucket.count for bucket in facets.price_ranges}
    assert counts == {
        "0 - 50": 1,
        "50 - 100": 1,
        "100 - 200": 2,
        "200 - 500": 0,
        "500 - 1000": 2,
        "1000 - 2000": 2,
        "2000+": 0,
    }


def test_parameter_facets_skip_own_parameter_filter(snapshot):
    request = SearchRequest(parameter_filters=(ParameterFilter(parameter_id=1, option_ids=frozenset([12])),))
    facets = _facets(snapshot, request)

    by_parameter = {facet.label: {option.label: option.count for option in facet.options} for facet in facets.parameters}
    assert by_parameter["RAM"] == {"16 GB": 2, "8 GB": 1, "32 GB": 1}
    assert by_parameter["Color"] == {"Silver": 1}


def test_buckets_are_sorted_by_count_then_label(snapshot):
    facets = _facets(snapshot, SearchRequest())

    counts = [bucket.count for bucket in facets.categories]
    assert counts == sorted(counts, reverse=True)
    assert facets.categories[0].label == "Laptops"
