"""Query normalization, fuzzy distance and phonetic keys.

Every piece of text that takes part in matching goes through
:func:`normalize_text`, both the user query and the indexed candidate fields,
so comparisons are always case and diacritic insensitive:

    1) strip the characters the legacy sanitizer rejected (``' ; " \\``),
    2) fold to ASCII with ``unidecode`` (``"Ñ"`` -> ``"n"``, ``"лаптоп"`` ->
       ``"laptop"``) and lowercase,
    3) replace anything that is not a letter or digit with a space,
    4) collapse whitespace.

:func:`to_phonetic` derives double metaphone keys from already normalized
text; the spelling corrector uses them to prefer sound-alike corrections.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from metaphone import doublemetaphone
from unidecode import unidecode

from .config import Settings, settings as default_settings
from .errors import InvalidQueryError

logger = logging.getLogger(__name__)

# Characters the legacy SQL sanitizer replaced with spaces.
_SANITIZE_RE = re.compile(r"[';\"\\]")
# After folding we keep only ASCII letters/digits; everything else separates tokens.
_NON_ALNUM_RE = re.compile(r"[^0-9a-z]+")


@dataclass(frozen=True)
class NormalizedQuery:
    original: str
    text: str
    tokens: tuple[str, ...]
    language: str

    @property
    def is_empty(self) -> bool:
        return not self.tokens


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    sanitized = _SANITIZE_RE.sub(" ", text)
    folded = unidecode(sanitized).lower()
    cleaned = _NON_ALNUM_RE.sub(" ", folded)
    return " ".join(cleaned.split())


def tokenize(text: Optional[str]) -> tuple[str, ...]:
    return tuple(normalize_text(text).split())


def select_language(language: Optional[str], config: Settings = default_settings) -> str:
    """Return ``language`` when supported, otherwise the configured default."""
    code = (language or "").strip().lower()
    if code in config.languages:
        return code
    logger.debug("select_language unsupported=%r fallback=%r", language, config.default_language)
    return config.default_language


def normalize_query(
    raw: Optional[str],
    language: Optional[str] = None,
    config: Settings = default_settings,
) -> NormalizedQuery:
    """Validate and normalize a free-text query.

    An empty or whitespace-only query is valid and means "match everything,
    filters only". Only the length bound is enforced here.
    """

    original = raw or ""
    if len(original) > config.max_query_length:
        raise InvalidQueryError(
            f"Search query cannot exceed {config.max_query_length} characters"
        )
    text = normalize_text(original)
    normalized = NormalizedQuery(
        original=original,
        text=text,
        tokens=tuple(text.split()),
        language=select_language(language, config),
    )
    logger.debug(
        "normalize_query raw=%r text=%r tokens=%s language=%s",
        original,
        normalized.text,
        normalized.tokens,
        normalized.language,
    )
    return normalized


def max_edit_distance(token: str, config: Settings = default_settings) -> int:
    if len(token) > config.fuzzy_long_token_length:
        return config.fuzzy_long_max_distance
    return config.fuzzy_short_max_distance


def edit_distance(left: str, right: str, limit: int) -> Optional[int]:
    """Levenshtein distance between two strings, or ``None`` above ``limit``.

    Rows are abandoned as soon as every cell exceeds ``limit``, which keeps the
    cost near-linear for the short tokens the engine compares.
    """

    if left == right:
        return 0
    if abs(len(left) - len(right)) > limit:
        return None
    if not left or not right:
        distance = max(len(left), len(right))
        return distance if distance <= limit else None

    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i] + [0] * len(right)
        row_min = current[0]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
            row_min = min(row_min, current[j])
        if row_min > limit:
            return None
        previous = current
    distance = previous[-1]
    return distance if distance <= limit else None


def _metaphone_tokens(tokens: Iterable[str]) -> list[str]:
    phonetics: list[str] = []
    for token in tokens:
        primary, secondary = doublemetaphone(token)
        for code in (primary, secondary):
            if code and code not in phonetics:
                phonetics.append(code)
    return phonetics


def to_phonetic(normalized_text: str) -> str:
    """Generate a phonetic key from **already normalized** text.

    Digits carry no sound, so purely numeric tokens contribute nothing.
    """

    if not normalized_text:
        return ""
    tokens = [token for token in normalized_text.split() if not token.isdigit()]
    return " ".join(_metaphone_tokens(tokens))
