"""Immutable, versioned catalog snapshots.

A :class:`CatalogSnapshot` is built once, out of band, by whoever loads the
catalog (see :mod:`product_search.importer`) and is then only read. Field
tokens and the suggestion vocabulary are computed eagerly at construction so
requests never mutate shared state. :class:`SnapshotHolder` swaps the current
snapshot reference atomically; a request grabs the reference once and keeps
using it even if a newer snapshot is published meanwhile.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Protocol

from .config import Settings, settings as default_settings
from .domain import Candidate
from .errors import SnapshotUnavailableError
from .normalizer import normalize_text
from .suggestions import SuggestionIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldText:
    text: str
    tokens: tuple[str, ...]
    token_set: frozenset[str]

    @classmethod
    def of(cls, raw: Optional[str]) -> "FieldText":
        text = normalize_text(raw)
        tokens = tuple(text.split())
        return cls(text=text, tokens=tokens, token_set=frozenset(tokens))


def _pick(values: Mapping[str, str], language: str, default: str) -> str:
    if values.get(language):
        return values[language]
    if values.get(default):
        return values[default]
    return next((value for value in values.values() if value), "")


@dataclass(frozen=True)
class CatalogLabels:
    """Display names for the ids candidates refer to."""

    categories: Mapping[int, Mapping[str, str]] = field(default_factory=dict)
    manufacturers: Mapping[int, str] = field(default_factory=dict)
    parameters: Mapping[int, Mapping[str, str]] = field(default_factory=dict)
    options: Mapping[int, Mapping[str, str]] = field(default_factory=dict)

    def category(self, category_id: int, language: str, default: str = "en") -> str:
        return _pick(self.categories.get(category_id, {}), language, default) or str(category_id)

    def manufacturer(self, manufacturer_id: int) -> str:
        return self.manufacturers.get(manufacturer_id) or str(manufacturer_id)

    def parameter(self, parameter_id: int, language: str, default: str = "en") -> str:
        return _pick(self.parameters.get(parameter_id, {}), language, default) or str(parameter_id)

    def option(self, option_id: int, language: str, default: str = "en") -> str:
        return _pick(self.options.get(option_id, {}), language, default) or str(option_id)

    def parameter_ids_named(self, name: str) -> frozenset[int]:
        wanted = normalize_text(name)
        return frozenset(
            parameter_id
            for parameter_id, names in self.parameters.items()
            if any(normalize_text(value) == wanted for value in names.values())
        )

    def option_names(self, option_id: int) -> frozenset[str]:
        return frozenset(normalize_text(value) for value in self.options.get(option_id, {}).values())


class CatalogSnapshot:
    """Read-only view of the catalog used for the duration of a search."""

    def __init__(
        self,
        version: int,
        candidates: Iterable[Candidate],
        labels: Optional[CatalogLabels] = None,
        *,
        config: Settings = default_settings,
        skipped: int = 0,
    ) -> None:
        self.version = version
        self.labels = labels or CatalogLabels()
        self.default_language = config.default_language
        self.languages = tuple(config.languages)
        self.skipped = skipped

        accepted: list[Candidate] = []
        texts: dict[tuple[int, str], dict[str, FieldText]] = {}
        seen: set[int] = set()
        for candidate in candidates:
            try:
                if candidate.id in seen:
                    raise ValueError("duplicate candidate id")
                shared = {
                    "model": FieldText.of(candidate.model),
                    "reference": FieldText.of(candidate.reference),
                    "barcode": FieldText.of(candidate.barcode),
                }
                for language in self.languages:
                    texts[(candidate.id, language)] = {
                        "name": FieldText.of(
                            candidate.localized(candidate.names, language, self.default_language)
                        ),
                        "description": FieldText.of(
                            candidate.localized(candidate.descriptions, language, self.default_language)
                        ),
                        **shared,
                    }
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("snapshot skip candidate=%r reason=%s", getattr(candidate, "id", None), exc)
                self.skipped += 1
                continue
            seen.add(candidate.id)
            accepted.append(candidate)

        self.candidates: tuple[Candidate, ...] = tuple(accepted)
        self._by_id = {candidate.id: candidate for candidate in self.candidates}
        self._texts = texts
        self._suggestions = {
            language: SuggestionIndex.build(self, language) for language in self.languages
        }
        logger.info(
            "snapshot built version=%s candidates=%s skipped=%s",
            self.version,
            len(self.candidates),
            self.skipped,
        )

    def __len__(self) -> int:
        return len(self.candidates)

    def get(self, candidate_id: int) -> Optional[Candidate]:
        return self._by_id.get(candidate_id)

    def resolve_language(self, language: str) -> str:
        return language if language in self.languages else self.default_language

    def field_texts(self, candidate: Candidate, language: str) -> Mapping[str, FieldText]:
        return self._texts[(candidate.id, self.resolve_language(language))]

    def suggestion_index(self, language: str) -> SuggestionIndex:
        return self._suggestions[self.resolve_language(language)]


class SnapshotProvider(Protocol):
    def current_snapshot(self) -> CatalogSnapshot: ...


class SnapshotHolder:
    """In-process snapshot provider with atomic publication."""

    def __init__(self, config: Settings = default_settings) -> None:
        self._config = config
        self._snapshot: Optional[CatalogSnapshot] = None
        self._version = 0
        self._lock = threading.Lock()

    def current_snapshot(self) -> CatalogSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise SnapshotUnavailableError("No catalog snapshot has been loaded yet")
        return snapshot

    def publish(
        self,
        candidates: Iterable[Candidate],
        labels: Optional[CatalogLabels] = None,
        *,
        skipped: int = 0,
    ) -> CatalogSnapshot:
        with self._lock:
            self._version += 1
            snapshot = CatalogSnapshot(
                self._version,
                candidates,
                labels,
                config=self._config,
                skipped=skipped,
            )
            self._snapshot = snapshot
        logger.info("snapshot published version=%s", snapshot.version)
        return snapshot
