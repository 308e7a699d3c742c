"""Compile structured request filters into per-dimension predicates.

Each filter dimension (categories, manufacturers, price, ...) becomes one pure
predicate over :class:`~product_search.domain.Candidate`. Values inside a
list-valued dimension are ORed, dimensions are ANDed. Keeping the dimensions
separate lets the facet aggregator ask "does this candidate pass everything
except dimension X" without recompiling anything.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping

from .domain import Candidate, FilterOperator, NumericRange, ParameterFilter, SearchRequest
from .errors import InvalidQueryError
from .normalizer import normalize_text
from .snapshot import CatalogLabels

logger = logging.getLogger(__name__)

Predicate = Callable[[Candidate], bool]

VISIBLE = "visible"
ACTIVE = "active"
CATEGORY = "category"
MANUFACTURER = "manufacturer"
PRICE = "price"
STATUS = "status"
ON_SALE = "on_sale"
FEATURED = "featured"
IN_STOCK = "in_stock"
WARRANTY = "warranty"
WEIGHT = "weight"
FLAGS = "flags"


@dataclass(frozen=True)
class CompiledFilter:
    predicates: Mapping[str, Predicate]
    applied: tuple[str, ...]
    parameter_dimensions: Mapping[int, str]

    def failing_dimensions(self, candidate: Candidate) -> frozenset[str]:
        return frozenset(
            dimension for dimension, predicate in self.predicates.items() if not predicate(candidate)
        )

    def matches(self, candidate: Candidate) -> bool:
        return all(predicate(candidate) for predicate in self.predicates.values())

    def matches_except(self, candidate: Candidate, dimension: str) -> bool:
        return all(
            predicate(candidate) for name, predicate in self.predicates.items() if name != dimension
        )


def validate_ranges(request: SearchRequest) -> None:
    for label, bounds in (
        ("price", request.price),
        ("warranty", request.warranty),
        ("weight", request.weight),
    ):
        if bounds.minimum is not None and bounds.maximum is not None and bounds.minimum > bounds.maximum:
            raise InvalidQueryError(
                f"Minimum {label} ({bounds.minimum:g}) cannot be greater than maximum {label} ({bounds.maximum:g})"
            )
    if request.active is False and not request.include_inactive:
        raise InvalidQueryError("active=false requires includeInactive=true")


def _range_predicate(bounds: NumericRange, attribute: str) -> Predicate:
    def predicate(candidate: Candidate) -> bool:
        return bounds.contains(getattr(candidate, attribute))

    return predicate


def _flag_predicate(attribute: str, expected: bool) -> Predicate:
    def predicate(candidate: Candidate) -> bool:
        return bool(getattr(candidate, attribute)) is expected

    return predicate


def _parameter_predicate(parameter_filter: ParameterFilter, labels: CatalogLabels) -> Predicate:
    if parameter_filter.parameter_id is not None:
        parameter_ids = frozenset({parameter_filter.parameter_id})
    else:
        parameter_ids = labels.parameter_ids_named(parameter_filter.parameter_name or "")
    wanted_values = frozenset(normalize_text(value) for value in parameter_filter.option_values)
    option_names = {option: labels.option_names(option) for option in labels.options} if wanted_values else {}
    require_all = parameter_filter.operator is FilterOperator.AND

    def predicate(candidate: Candidate) -> bool:
        options = {option for parameter, option in candidate.parameters if parameter in parameter_ids}
        if not options:
            return False
        hits = [option_id in options for option_id in parameter_filter.option_ids]
        if wanted_values:
            names = set().union(*(option_names.get(option, frozenset()) for option in options))
            hits.extend(value in names for value in wanted_values)
        if not hits:
            return True
        return all(hits) if require_all else any(hits)

    return predicate


def compile_filters(request: SearchRequest, labels: CatalogLabels) -> CompiledFilter:
    """Build the predicate set for ``request``.

    Only dimensions the request actually constrains get a predicate, apart
    from visibility and the active flag which always apply.
    """

    validate_ranges(request)
    predicates: dict[str, Predicate] = {VISIBLE: lambda candidate: bool(candidate.visible)}
    applied: list[str] = []

    if not request.include_inactive:
        predicates[ACTIVE] = lambda candidate: bool(candidate.active)
    elif request.active is not None:
        predicates[ACTIVE] = _flag_predicate("active", request.active)
        applied.append(f"active={str(request.active).lower()}")
    else:
        applied.append("includeInactive=true")

    if request.category_ids:
        wanted_categories = request.category_ids
        predicates[CATEGORY] = lambda candidate: not wanted_categories.isdisjoint(candidate.category_ids)
        applied.append(f"categoryIds={sorted(wanted_categories)}")

    if request.manufacturer_ids or request.manufacturer_names:
        wanted_ids = request.manufacturer_ids
        wanted_names = frozenset(normalize_text(name) for name in request.manufacturer_names)

        def manufacturer_predicate(candidate: Candidate) -> bool:
            if candidate.manufacturer_id is None:
                return False
            if candidate.manufacturer_id in wanted_ids:
                return True
            return normalize_text(labels.manufacturers.get(candidate.manufacturer_id)) in wanted_names

        predicates[MANUFACTURER] = manufacturer_predicate
        if wanted_ids:
            applied.append(f"manufacturerIds={sorted(wanted_ids)}")
        if wanted_names:
            applied.append(f"manufacturerNames={sorted(wanted_names)}")

    if request.price.bounded:
        predicates[PRICE] = _range_predicate(request.price, "price")
        applied.append(f"price=[{request.price.minimum}, {request.price.maximum}]")

    if request.statuses:
        wanted_statuses = request.statuses
        predicates[STATUS] = lambda candidate: candidate.status in wanted_statuses
        applied.append(f"statuses={sorted(status.name for status in wanted_statuses)}")

    for dimension, attribute, expected in (
        (ON_SALE, "on_sale", request.on_sale),
        (FEATURED, "featured", request.featured),
        (IN_STOCK, "in_stock", request.in_stock),
    ):
        if expected is not None:
            predicates[dimension] = _flag_predicate(attribute, expected)
            applied.append(f"{dimension}={str(expected).lower()}")

    if request.warranty.bounded:
        predicates[WARRANTY] = _range_predicate(request.warranty, "warranty")
        applied.append(f"warranty=[{request.warranty.minimum}, {request.warranty.maximum}]")

    if request.weight.bounded:
        predicates[WEIGHT] = _range_predicate(request.weight, "weight")
        applied.append(f"weight=[{request.weight.minimum}, {request.weight.maximum}]")

    if request.flags:
        wanted_flags = frozenset(normalize_text(flag) for flag in request.flags)
        predicates[FLAGS] = lambda candidate: any(
            normalize_text(flag) in wanted_flags for flag in candidate.flags
        )
        applied.append(f"flags={sorted(wanted_flags)}")

    parameter_dimensions: dict[int, str] = {}
    for parameter_filter in request.parameter_filters:
        if parameter_filter.parameter_id is None and not parameter_filter.parameter_name:
            raise InvalidQueryError("Parameter filter needs a parameterId or parameterName")
        dimension = parameter_filter.dimension
        if dimension in predicates:
            raise InvalidQueryError(f"Duplicate filter for {dimension}")
        predicates[dimension] = _parameter_predicate(parameter_filter, labels)
        if parameter_filter.parameter_id is not None:
            parameter_dimensions[parameter_filter.parameter_id] = dimension
        else:
            for parameter_id in labels.parameter_ids_named(parameter_filter.parameter_name or ""):
                parameter_dimensions[parameter_id] = dimension
        options = sorted(parameter_filter.option_ids) + sorted(parameter_filter.option_values)
        applied.append(f"{dimension} {parameter_filter.operator.value} {options}")

    logger.debug("compile_filters dimensions=%s", sorted(predicates))
    return CompiledFilter(
        predicates=predicates,
        applied=tuple(applied),
        parameter_dimensions=parameter_dimensions,
    )
