"""Relevance scoring, ordering and pagination.

Scoring works on *clauses*: each free-text token is a clause over the searched
fields, and each explicit field input (``productName``, ``model``, ...) adds
clauses restricted to its own field. A candidate's score is the weighted sum of
per-field hits divided by the number of clauses:

* ``ALL_FIELDS`` and ``SPECIFIC_FIELDS`` weigh every field 1.0,
* ``SMART`` uses the configured weight table, multiplies by the exact-name
  boost when the whole name equals the query, and adds a tiny featured/on-sale
  tie-breaker.

An exact token hit is worth 1.0; with fuzzy search a hit ``d`` edits away is
worth ``1 - fuzzy_penalty * d``. Exact-match mode skips tokens entirely and
compares whole normalized values.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from .config import Settings, settings as default_settings
from .domain import SEARCH_FIELDS, Candidate, ScoredResult, SearchMode, SearchRequest, SortDirection, SortKey
from .normalizer import NormalizedQuery, edit_distance, max_edit_distance, normalize_text
from .snapshot import CatalogSnapshot, FieldText

logger = logging.getLogger(__name__)

UNIFORM_WEIGHTS = {field_name: 1.0 for field_name in SEARCH_FIELDS}
EPSILON = 1e-9


@dataclass(frozen=True)
class TextClause:
    token: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class ExactCondition:
    text: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class ScoringPlan:
    mode: SearchMode
    clauses: tuple[TextClause, ...]
    exact_conditions: tuple[ExactCondition, ...]
    weights: Mapping[str, float]
    searched_fields: tuple[str, ...]
    query_text: str
    exact_match: bool
    fuzzy: bool

    @property
    def match_all(self) -> bool:
        if self.exact_match:
            return not self.exact_conditions
        return not self.clauses


def build_plan(query: NormalizedQuery, request: SearchRequest, config: Settings = default_settings) -> ScoringPlan:
    field_queries = {
        field_name: normalize_text(value)
        for field_name, value in request.field_queries.items()
        if field_name in SEARCH_FIELDS and normalize_text(value)
    }
    if request.mode is SearchMode.SPECIFIC_FIELDS and field_queries:
        text_fields = tuple(field_name for field_name in SEARCH_FIELDS if field_name in field_queries)
    else:
        text_fields = SEARCH_FIELDS

    clauses = [TextClause(token, text_fields) for token in query.tokens]
    exact_conditions = [ExactCondition(query.text, text_fields)] if query.text else []
    for field_name, text in field_queries.items():
        clauses.extend(TextClause(token, (field_name,)) for token in text.split())
        exact_conditions.append(ExactCondition(text, (field_name,)))

    searched = set(field_queries)
    if query.tokens:
        searched.update(text_fields)
    weights = config.smart_weights() if request.mode is SearchMode.SMART else UNIFORM_WEIGHTS
    return ScoringPlan(
        mode=request.mode,
        clauses=tuple(clauses),
        exact_conditions=tuple(exact_conditions),
        weights=weights,
        searched_fields=tuple(field_name for field_name in SEARCH_FIELDS if field_name in searched),
        query_text=query.text,
        exact_match=request.exact_match,
        fuzzy=request.fuzzy_search,
    )


class Ranker:
    """Scores candidates of one snapshot against one :class:`ScoringPlan`."""

    def __init__(
        self,
        plan: ScoringPlan,
        snapshot: CatalogSnapshot,
        language: str,
        config: Settings = default_settings,
    ) -> None:
        self.plan = plan
        self.snapshot = snapshot
        self.language = language
        self.config = config

    def _hit(self, token: str, field_text: FieldText) -> float:
        if token in field_text.token_set:
            return 1.0
        if not self.plan.fuzzy:
            return 0.0
        limit = max_edit_distance(token, self.config)
        best: Optional[int] = None
        for candidate_token in field_text.token_set:
            distance = edit_distance(token, candidate_token, limit)
            if distance is not None and (best is None or distance < best):
                best = distance
        if best is None:
            return 0.0
        return max(0.0, 1.0 - self.config.fuzzy_penalty * best)

    def _exact_value(self, condition: ExactCondition, texts: Mapping[str, FieldText]) -> tuple[float, set[str]]:
        best = 0.0
        fields: set[str] = set()
        limit = max_edit_distance(condition.text, self.config)
        for field_name in condition.fields:
            value = texts[field_name].text
            if not value:
                continue
            if value == condition.text:
                hit = 1.0
            elif self.plan.fuzzy:
                distance = edit_distance(condition.text, value, limit)
                if distance is None:
                    continue
                hit = max(0.0, 1.0 - self.config.fuzzy_penalty * distance)
            else:
                continue
            if hit > 0:
                fields.add(field_name)
                best = max(best, hit)
        return best, fields

    def _score_exact(self, candidate: Candidate, texts: Mapping[str, FieldText]) -> Optional[ScoredResult]:
        score = 1.0
        matched: set[str] = set()
        for condition in self.plan.exact_conditions:
            value, fields = self._exact_value(condition, texts)
            if value <= 0:
                return None
            score *= value
            matched.update(fields)
        return ScoredResult(candidate.id, score, frozenset(matched))

    def _score_tokens(self, candidate: Candidate, texts: Mapping[str, FieldText]) -> Optional[ScoredResult]:
        clauses = self.plan.clauses
        total = 0.0
        matched_clauses = 0
        matched_fields: set[str] = set()
        for clause in clauses:
            clause_matched = False
            for field_name in clause.fields:
                hit = self._hit(clause.token, texts[field_name])
                if hit > 0:
                    clause_matched = True
                    matched_fields.add(field_name)
                    total += self.plan.weights[field_name] * hit
            if clause_matched:
                matched_clauses += 1
        if matched_clauses / len(clauses) + EPSILON < self.config.minimum_token_match or matched_clauses == 0:
            return None

        score = total / len(clauses)
        if self.plan.mode is SearchMode.SMART:
            if self.plan.query_text and texts["name"].text == self.plan.query_text:
                score *= self.config.smart_exact_name_boost
            score += self.config.smart_flag_boost * (int(candidate.featured) + int(candidate.on_sale))
        return ScoredResult(candidate.id, score, frozenset(matched_fields))

    def score(self, candidate: Candidate) -> Optional[ScoredResult]:
        """Return the candidate's score, or ``None`` when it does not match."""
        if self.plan.match_all:
            return ScoredResult(candidate.id, 1.0)
        texts = self.snapshot.field_texts(candidate, self.language)
        if self.plan.exact_match:
            return self._score_exact(candidate, texts)
        return self._score_tokens(candidate, texts)


def _sort_value(key: SortKey, snapshot: CatalogSnapshot, language: str) -> Callable[[ScoredResult], Any]:
    def value(result: ScoredResult) -> Any:
        candidate = snapshot.get(result.candidate_id)
        if candidate is None:
            return None
        if key is SortKey.PRICE:
            return candidate.price
        if key is SortKey.NAME:
            return snapshot.field_texts(candidate, language)["name"].text or None
        if key is SortKey.CREATED_AT:
            return candidate.created_at
        return candidate.popularity

    return value


def order_results(
    results: Sequence[ScoredResult],
    request: SearchRequest,
    snapshot: CatalogSnapshot,
    language: str,
) -> list[ScoredResult]:
    """Order the full result set.

    Relevance sorts by score descending. Every other key sorts in the requested
    direction with missing values last. Ties always fall back to candidate id
    ascending, so the order is total and pages never overlap.
    """

    by_id = sorted(results, key=lambda result: result.candidate_id)
    if request.sort_by is SortKey.RELEVANCE:
        return sorted(by_id, key=lambda result: -result.score)

    value = _sort_value(request.sort_by, snapshot, language)
    present = [result for result in by_id if value(result) is not None]
    missing = [result for result in by_id if value(result) is None]
    present.sort(key=value, reverse=request.sort_direction is SortDirection.DESC)
    return present + missing


def total_pages(total: int, size: int) -> int:
    return math.ceil(total / size) if size > 0 else 0


def paginate(ordered: Sequence[ScoredResult], page: int, size: int) -> tuple[ScoredResult, ...]:
    start = page * size
    return tuple(ordered[start:start + size])
