"""Search orchestration over one catalog snapshot.

``normalize -> compile filters -> score + facet entries -> order -> page``,
followed by spelling correction when the result count falls under the
configured threshold. Everything here is pure and synchronous; the caller
supplies the snapshot and runs the engine wherever it likes (see
:mod:`product_search.service`).
"""
from __future__ import annotations

import logging
from dataclasses import replace
from time import perf_counter
from typing import Callable

from .config import Settings, settings as default_settings
from .domain import Candidate, ScoredResult, SearchOutcome, SearchRequest
from .errors import InvalidQueryError, SearchTimeoutError
from .facets import aggregate_facets
from .filters import compile_filters
from .normalizer import NormalizedQuery, normalize_query
from .ranking import Ranker, build_plan, order_results, paginate, total_pages
from .snapshot import CatalogSnapshot
from .suggestions import SearchSuggestions

logger = logging.getLogger(__name__)

# How many candidates are evaluated between two deadline checks.
DEADLINE_STRIDE = 256
MAX_PAGE_SIZE = 100
SUGGESTION_PREFIX_BOUNDS = (2, 50)


class Deadline:
    def __init__(self, timeout_ms: float, clock: Callable[[], float] = perf_counter) -> None:
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._expires_at = clock() + timeout_ms / 1000

    def check(self, stage: str) -> None:
        if self._clock() > self._expires_at:
            raise SearchTimeoutError(self.timeout_ms, stage)


def validate_paging(request: SearchRequest) -> None:
    if request.page < 0:
        raise InvalidQueryError("Page number cannot be negative")
    if not 1 <= request.size <= MAX_PAGE_SIZE:
        raise InvalidQueryError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")


class SearchEngine:
    def __init__(self, config: Settings = default_settings, clock: Callable[[], float] = perf_counter) -> None:
        self.config = config
        self._clock = clock

    def search(self, request: SearchRequest, snapshot: CatalogSnapshot) -> SearchOutcome:
        """Run ``request`` against ``snapshot``.

        Raises :class:`InvalidQueryError` before doing any work when the
        request is malformed, and :class:`SearchTimeoutError` when the
        per-request deadline passes at any point.
        """

        started = self._clock()
        timeout_ms = request.timeout_ms if request.timeout_ms is not None else self.config.request_timeout_ms
        deadline = Deadline(timeout_ms, self._clock)
        validate_paging(request)

        query = normalize_query(request.query, request.language, self.config)
        outcome = self._execute(request, query, snapshot, deadline)

        if not query.is_empty and outcome.total < self.config.min_results_for_correction:
            index = snapshot.suggestion_index(query.language)
            suggestions = index.suggest(query, config=self.config)
            corrected = index.correct(query, self.config)
            deadline.check("correction")
            logger.info(
                "correction q=%r total=%s corrected=%r suggestions=%s",
                query.original,
                outcome.total,
                corrected,
                len(suggestions),
            )
            if corrected and corrected != query.text:
                corrected_query = normalize_query(corrected, request.language, self.config)
                outcome = self._execute(replace(request, query=corrected), corrected_query, snapshot, deadline)
                outcome = replace(outcome, original_query=query.original, corrected_query=corrected)
            outcome = replace(outcome, suggestions=suggestions)

        elapsed_ms = (self._clock() - started) * 1000
        return replace(outcome, elapsed_ms=elapsed_ms)

    def _execute(
        self,
        request: SearchRequest,
        query: NormalizedQuery,
        snapshot: CatalogSnapshot,
        deadline: Deadline,
    ) -> SearchOutcome:
        t0 = self._clock()
        compiled = compile_filters(request, snapshot.labels)
        plan = build_plan(query, request, self.config)
        ranker = Ranker(plan, snapshot, query.language, self.config)
        t1 = self._clock()

        results: list[ScoredResult] = []
        facet_entries: list[tuple[Candidate, frozenset[str]]] = []
        skipped = 0
        for position, candidate in enumerate(snapshot.candidates):
            if position % DEADLINE_STRIDE == 0:
                deadline.check("ranking")
            try:
                failing = compiled.failing_dimensions(candidate)
                if failing and (not request.faceted or len(failing) > 1):
                    continue
                scored = ranker.score(candidate)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.debug("skip malformed candidate=%r reason=%s", getattr(candidate, "id", None), exc)
                skipped += 1
                continue
            if scored is None:
                continue
            if not failing:
                results.append(scored)
            if request.faceted:
                facet_entries.append((candidate, failing))
        t2 = self._clock()

        deadline.check("ordering")
        ordered = order_results(results, request, snapshot, query.language)
        page = paginate(ordered, request.page, request.size)
        t3 = self._clock()

        facets = None
        if request.faceted:
            deadline.check("facets")
            facets = aggregate_facets(facet_entries, compiled, snapshot, query.language, self.config)
        t4 = self._clock()

        related: tuple[str, ...] = ()
        if not query.is_empty:
            related = snapshot.suggestion_index(query.language).related(query, self.config.related_query_limit)
        deadline.check("assembly")

        logger.info(
            "timing: total=%.2fms filter=%.2fms rank=%.2fms order=%.2fms facets=%.2fms q=%r mode=%s hits=%s skipped=%s version=%s",
            (t4 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            (t3 - t2) * 1000,
            (t4 - t3) * 1000,
            query.text,
            request.mode.value,
            len(ordered),
            skipped,
            snapshot.version,
        )
        return SearchOutcome(
            results=page,
            total=len(ordered),
            total_pages=total_pages(len(ordered), request.size),
            page=request.page,
            size=request.size,
            max_score=max((result.score for result in ordered), default=0.0),
            original_query=query.original,
            processed_query=query.text,
            searched_fields=plan.searched_fields,
            applied_filters=compiled.applied,
            facets=facets,
            related_queries=related,
            snapshot_version=snapshot.version,
            skipped=skipped,
        )

    def suggest(self, snapshot: CatalogSnapshot, prefix: str, language: str, limit: int) -> SearchSuggestions:
        low, high = SUGGESTION_PREFIX_BOUNDS
        if not low <= len(prefix.strip()) <= high:
            raise InvalidQueryError(f"Query must be between {low} and {high} characters")
        query = normalize_query(prefix, language, self.config)
        return snapshot.suggestion_index(query.language).grouped(prefix, limit)
