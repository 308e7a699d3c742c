"""Exceptions raised by the search core."""
from __future__ import annotations


class SearchError(Exception):
    """Base class for every error the search engine surfaces to callers."""


class InvalidQueryError(SearchError):
    """Malformed or oversized query, or contradictory filter bounds."""


class SearchTimeoutError(SearchError):
    """The per-request deadline expired; partial work has been discarded."""

    def __init__(self, timeout_ms: float, stage: str) -> None:
        super().__init__(f"search exceeded {timeout_ms:.0f}ms during {stage}")
        self.timeout_ms = timeout_ms
        self.stage = stage


class SnapshotUnavailableError(SearchError):
    """No catalog snapshot has been published yet."""
