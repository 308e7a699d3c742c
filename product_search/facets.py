"""Faceted-navigation counts.

A facet value's count answers "how many results would I get if I also
selected this value". The candidate set for a dimension is therefore filtered
by every *other* active dimension but not by the dimension itself. The engine
hands over each text-matched candidate together with the set of filter
dimensions it fails; a candidate contributes to dimension ``D`` when it fails
nothing, or fails ``D`` alone.
"""
from __future__ import annotations

import bisect
import logging
from collections import Counter, defaultdict
from typing import Iterable, Sequence

from .config import Settings, settings as default_settings
from .domain import Candidate, FacetBucket, FacetSet, ParameterFacet, PriceBucket, ProductStatus
from .filters import CATEGORY, MANUFACTURER, PRICE, STATUS, CompiledFilter
from .snapshot import CatalogSnapshot

logger = logging.getLogger(__name__)

# Prices carry two decimals, so an inclusive upper bound one cent below the next
# breakpoint selects exactly the same products as the half-open bucket.
PRICE_STEP = 0.01


def _passes_except(failing: frozenset[str], dimension: str | None) -> bool:
    return not failing or (dimension is not None and failing == {dimension})


def _buckets(dimension: str, counts: Counter, label) -> tuple[FacetBucket, ...]:
    buckets = [
        FacetBucket(dimension=dimension, value=str(value), label=label(value), count=count)
        for value, count in counts.items()
        if count > 0
    ]
    buckets.sort(key=lambda bucket: (-bucket.count, bucket.label.lower(), bucket.value))
    return tuple(buckets)


def _fmt(value: float) -> str:
    return f"{value:g}"


def price_buckets(breakpoints: Sequence[float], counts: Sequence[int]) -> tuple[PriceBucket, ...]:
    bounds = [0.0, *breakpoints]
    buckets = []
    for index, lower in enumerate(bounds):
        upper = bounds[index + 1] if index + 1 < len(bounds) else None
        if upper is None:
            label = f"{_fmt(lower)}+"
            maximum = None
        else:
            label = f"{_fmt(lower)} - {_fmt(upper)}"
            maximum = round(upper - PRICE_STEP, 2)
        buckets.append(PriceBucket(label=label, minimum=lower, maximum=maximum, count=counts[index]))
    return tuple(buckets)


def aggregate_facets(
    entries: Iterable[tuple[Candidate, frozenset[str]]],
    compiled: CompiledFilter,
    snapshot: CatalogSnapshot,
    language: str,
    config: Settings = default_settings,
) -> FacetSet:
    """Count facet values over ``(candidate, failing_dimensions)`` pairs.

    Pairs whose candidate fails more than one dimension are ignored; they
    cannot contribute to any facet.
    """

    labels = snapshot.labels
    breakpoints = sorted(config.price_breakpoints)
    categories: Counter = Counter()
    manufacturers: Counter = Counter()
    statuses: Counter = Counter()
    prices = [0] * (len(breakpoints) + 1)
    options: dict[int, Counter] = defaultdict(Counter)

    for candidate, failing in entries:
        if len(failing) > 1:
            continue
        if _passes_except(failing, CATEGORY):
            categories.update(candidate.category_ids)
        if _passes_except(failing, MANUFACTURER) and candidate.manufacturer_id is not None:
            manufacturers[candidate.manufacturer_id] += 1
        if _passes_except(failing, STATUS):
            statuses[candidate.status] += 1
        if _passes_except(failing, PRICE) and candidate.price is not None:
            prices[bisect.bisect_right(breakpoints, candidate.price)] += 1
        for parameter_id, option_id in candidate.parameters:
            if _passes_except(failing, compiled.parameter_dimensions.get(parameter_id)):
                options[parameter_id][option_id] += 1

    default = snapshot.default_language
    parameter_facets = [
        ParameterFacet(
            parameter_id=parameter_id,
            label=labels.parameter(parameter_id, language, default),
            options=_buckets(
                f"parameter:{parameter_id}",
                option_counts,
                lambda option_id: labels.option(option_id, language, default),
            ),
        )
        for parameter_id, option_counts in options.items()
    ]
    parameter_facets.sort(key=lambda facet: (facet.label.lower(), facet.parameter_id))

    facets = FacetSet(
        categories=_buckets(CATEGORY, categories, lambda value: labels.category(value, language, default)),
        manufacturers=_buckets(MANUFACTURER, manufacturers, labels.manufacturer),
        parameters=tuple(parameter_facets),
        price_ranges=price_buckets(breakpoints, prices),
        statuses=_buckets(
            STATUS,
            Counter({status.name: count for status, count in statuses.items()}),
            lambda name: ProductStatus[name].label(language),
        ),
    )
    logger.debug(
        "aggregate_facets categories=%s manufacturers=%s parameters=%s statuses=%s",
        len(facets.categories),
        len(facets.manufacturers),
        len(facets.parameters),
        len(facets.statuses),
    )
    return facets
