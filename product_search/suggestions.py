"""Autocomplete suggestions and spelling correction.

A :class:`SuggestionIndex` is built once per snapshot and language from the
visible, active products: their names and models plus the manufacturer and
category names they reference. It answers three questions:

* which catalog phrases complete or closely resemble the query
  (:meth:`SuggestionIndex.suggest`),
* which known term is closest to each query token the catalog has never seen
  (:meth:`SuggestionIndex.correct`),
* grouped autocomplete for the suggestions endpoint
  (:meth:`SuggestionIndex.grouped`).
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .config import Settings, settings as default_settings
from .normalizer import NormalizedQuery, edit_distance, max_edit_distance, normalize_text, to_phonetic

if TYPE_CHECKING:
    from .snapshot import CatalogSnapshot

logger = logging.getLogger(__name__)

GROUPS = ("productNames", "manufacturers", "categories", "models", "referenceNumbers")


@dataclass(frozen=True)
class Phrase:
    label: str
    text: str
    tokens: tuple[str, ...]
    group: str


@dataclass(frozen=True)
class SearchSuggestions:
    query: str
    groups: dict[str, tuple[str, ...]]
    keywords: tuple[str, ...]

    @property
    def total(self) -> int:
        return sum(len(values) for values in self.groups.values()) + len(self.keywords)


class SuggestionIndex:
    def __init__(
        self,
        phrases: tuple[Phrase, ...],
        term_counts: Counter,
        known_terms: frozenset[str],
    ) -> None:
        self.phrases = phrases
        self.term_counts = term_counts
        self.known_terms = known_terms
        self._terms_by_length: dict[int, list[str]] = defaultdict(list)
        for term in sorted(term_counts):
            self._terms_by_length[len(term)].append(term)

    @classmethod
    def build(cls, snapshot: "CatalogSnapshot", language: str) -> "SuggestionIndex":
        labels = snapshot.labels
        phrases: dict[tuple[str, str], Phrase] = {}
        term_counts: Counter = Counter()
        known: set[str] = set()

        def add(label: str, group: str) -> None:
            text = normalize_text(label)
            if not text or (group, text) in phrases:
                return
            tokens = tuple(text.split())
            phrases[(group, text)] = Phrase(label=label.strip(), text=text, tokens=tokens, group=group)

        for candidate in snapshot.candidates:
            texts = snapshot.field_texts(candidate, language)
            for field_text in texts.values():
                known.update(field_text.tokens)
            if not (candidate.visible and candidate.active):
                continue
            name = candidate.localized(candidate.names, language, snapshot.default_language)
            add(name, "productNames")
            add(candidate.model, "models")
            add(candidate.reference, "referenceNumbers")
            term_counts.update(texts["name"].tokens)
            term_counts.update(texts["model"].tokens)
            if candidate.manufacturer_id is not None:
                manufacturer = labels.manufacturers.get(candidate.manufacturer_id, "")
                add(manufacturer, "manufacturers")
                term_counts.update(normalize_text(manufacturer).split())
            for category_id in candidate.category_ids:
                if category_id in labels.categories:
                    category = labels.category(category_id, language, snapshot.default_language)
                    add(category, "categories")
                    term_counts.update(normalize_text(category).split())

        # Correction targets must be words: bare numbers and single letters are
        # never proposed as replacements.
        for term in [term for term in term_counts if len(term) < 2 or term.isdigit()]:
            del term_counts[term]
        known.update(term_counts)
        return cls(tuple(phrases.values()), term_counts, frozenset(known))

    def _token_match(self, phrase_token: str, query_token: str, config: Settings) -> Optional[int]:
        """0 for a prefix match, the edit distance for a fuzzy match, else None."""
        if phrase_token.startswith(query_token):
            return 0
        return edit_distance(phrase_token, query_token, max_edit_distance(query_token, config))

    def suggest(
        self,
        query: NormalizedQuery,
        limit: Optional[int] = None,
        config: Settings = default_settings,
    ) -> tuple[str, ...]:
        limit = config.suggestion_limit if limit is None else limit
        if query.is_empty or limit <= 0:
            return ()
        ranked: list[tuple[int, int, str, str]] = []
        for phrase in self.phrases:
            matched = 0
            total_distance = 0
            for query_token in query.tokens:
                distances = [
                    distance
                    for distance in (self._token_match(token, query_token, config) for token in phrase.tokens)
                    if distance is not None
                ]
                if distances:
                    matched += 1
                    total_distance += min(distances)
            if matched:
                ranked.append((-matched, total_distance, phrase.label.lower(), phrase.label))

        ranked.sort()
        suggestions: list[str] = []
        seen: set[str] = set()
        for _, _, key, label in ranked:
            if key in seen:
                continue
            seen.add(key)
            suggestions.append(label)
            if len(suggestions) >= limit:
                break
        return tuple(suggestions)

    def closest_term(self, token: str, config: Settings = default_settings) -> Optional[str]:
        limit = config.correction_max_distance
        token_phonetic = to_phonetic(token)
        best: Optional[tuple[int, int, int, str]] = None
        for length in range(len(token) - limit, len(token) + limit + 1):
            for term in self._terms_by_length.get(length, ()):
                distance = edit_distance(token, term, limit)
                if distance is None or distance == 0:
                    continue
                sounds_alike = 0 if token_phonetic and to_phonetic(term) == token_phonetic else 1
                key = (distance, sounds_alike, -self.term_counts[term], term)
                if best is None or key < best:
                    best = key
        return None if best is None else best[3]

    def correct(self, query: NormalizedQuery, config: Settings = default_settings) -> Optional[str]:
        """Replacement text for the tokens the catalog does not know.

        Tokens already present in the catalog are left out of the correction;
        unknown tokens with no term inside the distance bound are dropped. When
        nothing can be replaced there is no correction.
        """

        replacements: list[str] = []
        for token in query.tokens:
            if token in self.known_terms:
                continue
            replacement = self.closest_term(token, config)
            logger.debug("correct token=%r replacement=%r", token, replacement)
            if replacement is not None:
                replacements.append(replacement)
        if not replacements:
            return None
        return " ".join(replacements)

    def related(self, query: NormalizedQuery, limit: int) -> tuple[str, ...]:
        """Completions of the last query token, most frequent terms first."""
        if query.is_empty or limit <= 0:
            return ()
        *head, last = query.tokens
        completions = sorted(
            (term for term in self.term_counts if term.startswith(last) and term != last),
            key=lambda term: (-self.term_counts[term], term),
        )
        return tuple(" ".join([*head, term]) for term in completions[:limit])

    def grouped(self, prefix: str, limit: int) -> SearchSuggestions:
        text = normalize_text(prefix)
        tokens = text.split()
        groups: dict[str, list[str]] = {group: [] for group in GROUPS}
        if tokens:
            for phrase in sorted(self.phrases, key=lambda item: item.label.lower()):
                bucket = groups[phrase.group]
                if len(bucket) >= limit:
                    continue
                if all(any(token.startswith(part) for token in phrase.tokens) for part in tokens):
                    bucket.append(phrase.label)
        keywords: tuple[str, ...] = ()
        if tokens:
            keywords = tuple(
                sorted(
                    (term for term in self.term_counts if term.startswith(tokens[-1])),
                    key=lambda term: (-self.term_counts[term], term),
                )[:limit]
            )
        return SearchSuggestions(
            query=prefix,
            groups={group: tuple(values) for group, values in groups.items()},
            keywords=keywords,
        )
