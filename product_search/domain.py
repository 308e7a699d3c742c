"""Internal value types shared by the search pipeline.

Everything here is created fresh per search (requests, results, outcomes) or
read-only for the lifetime of a catalog snapshot (candidates). None of these
objects are mutated after construction.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional

SEARCH_FIELDS = ("name", "description", "model", "reference", "barcode")


class SearchMode(str, Enum):
    ALL_FIELDS = "ALL_FIELDS"
    SPECIFIC_FIELDS = "SPECIFIC_FIELDS"
    SMART = "SMART"


class SortKey(str, Enum):
    RELEVANCE = "relevance"
    PRICE = "price"
    NAME = "name"
    CREATED_AT = "createdAt"
    POPULARITY = "popularity"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class FilterOperator(str, Enum):
    OR = "OR"
    AND = "AND"


class ProductStatus(Enum):
    NOT_AVAILABLE = (0, "не е в наличност", "not available")
    AVAILABLE = (1, "в наличност", "available")
    LIMITED_QUANTITY = (2, "ограничено количество", "limited quantity")
    ON_ROUTE = (3, "в път", "on route")
    ON_DEMAND = (4, "по заявка", "on demand")

    def __init__(self, code: int, name_bg: str, name_en: str) -> None:
        self.code = code
        self.name_bg = name_bg
        self.name_en = name_en

    def label(self, language: str) -> str:
        return self.name_bg if language == "bg" else self.name_en

    @classmethod
    def from_code(cls, code: int) -> "ProductStatus":
        for status in cls:
            if status.code == code:
                return status
        raise ValueError(f"Unknown status code: {code}")

    @classmethod
    def parse(cls, value: object) -> "ProductStatus":
        """Accept a member name (any case) or a numeric code."""
        if isinstance(value, ProductStatus):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unknown product status: {value!r}")
        if isinstance(value, int):
            return cls.from_code(value)
        if isinstance(value, str):
            key = value.strip().upper().replace(" ", "_")
            if key.isdigit():
                return cls.from_code(int(key))
            try:
                return cls[key]
            except KeyError:
                pass
        raise ValueError(f"Unknown product status: {value!r}")


@dataclass(frozen=True)
class ParameterFilter:
    """Option membership test for one parameter.

    ``operator`` only governs the listed options; separate filters are always
    combined with AND.
    """

    parameter_id: Optional[int] = None
    parameter_name: Optional[str] = None
    option_ids: frozenset[int] = frozenset()
    option_values: frozenset[str] = frozenset()
    operator: FilterOperator = FilterOperator.OR

    @property
    def dimension(self) -> str:
        if self.parameter_id is not None:
            return f"parameter:{self.parameter_id}"
        return f"parameter:{self.parameter_name}"


@dataclass(frozen=True)
class NumericRange:
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def bounded(self) -> bool:
        return self.minimum is not None or self.maximum is not None

    def contains(self, value: Optional[float]) -> bool:
        if not self.bounded:
            return True
        if value is None:
            return False
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class SearchRequest:
    query: str = ""
    field_queries: Mapping[str, str] = field(default_factory=dict)
    category_ids: frozenset[int] = frozenset()
    manufacturer_ids: frozenset[int] = frozenset()
    manufacturer_names: frozenset[str] = frozenset()
    price: NumericRange = NumericRange()
    statuses: frozenset[ProductStatus] = frozenset()
    on_sale: Optional[bool] = None
    featured: Optional[bool] = None
    active: Optional[bool] = None
    in_stock: Optional[bool] = None
    include_inactive: bool = False
    parameter_filters: tuple[ParameterFilter, ...] = ()
    warranty: NumericRange = NumericRange()
    weight: NumericRange = NumericRange()
    flags: frozenset[str] = frozenset()
    exact_match: bool = False
    fuzzy_search: bool = False
    mode: SearchMode = SearchMode.ALL_FIELDS
    sort_by: SortKey = SortKey.RELEVANCE
    sort_direction: SortDirection = SortDirection.DESC
    page: int = 0
    size: int = 20
    language: str = "en"
    faceted: bool = False
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class Candidate:
    id: int
    names: Mapping[str, str] = field(default_factory=dict)
    descriptions: Mapping[str, str] = field(default_factory=dict)
    model: str = ""
    reference: str = ""
    barcode: str = ""
    category_ids: frozenset[int] = frozenset()
    manufacturer_id: Optional[int] = None
    price: Optional[float] = None
    status: ProductStatus = ProductStatus.AVAILABLE
    active: bool = True
    visible: bool = True
    featured: bool = False
    on_sale: bool = False
    in_stock: bool = True
    parameters: frozenset[tuple[int, int]] = frozenset()
    warranty: Optional[int] = None
    weight: Optional[float] = None
    flags: frozenset[str] = frozenset()
    created_at: Optional[datetime] = None
    popularity: int = 0

    def localized(self, values: Mapping[str, str], language: str, default: str) -> str:
        if values.get(language):
            return values[language]
        if values.get(default):
            return values[default]
        for value in values.values():
            if value:
                return value
        return ""


@dataclass(frozen=True)
class ScoredResult:
    candidate_id: int
    score: float
    matched_fields: frozenset[str] = frozenset()


@dataclass(frozen=True)
class FacetBucket:
    dimension: str
    value: str
    label: str
    count: int


@dataclass(frozen=True)
class ParameterFacet:
    parameter_id: int
    label: str
    options: tuple[FacetBucket, ...]


@dataclass(frozen=True)
class PriceBucket:
    label: str
    minimum: float
    maximum: Optional[float]
    count: int


@dataclass(frozen=True)
class FacetSet:
    categories: tuple[FacetBucket, ...] = ()
    manufacturers: tuple[FacetBucket, ...] = ()
    parameters: tuple[ParameterFacet, ...] = ()
    price_ranges: tuple[PriceBucket, ...] = ()
    statuses: tuple[FacetBucket, ...] = ()


@dataclass(frozen=True)
class SearchOutcome:
    results: tuple[ScoredResult, ...]
    total: int
    total_pages: int
    page: int
    size: int
    max_score: float
    original_query: str
    processed_query: str
    searched_fields: tuple[str, ...]
    applied_filters: tuple[str, ...]
    facets: Optional[FacetSet] = None
    suggestions: tuple[str, ...] = ()
    related_queries: tuple[str, ...] = ()
    corrected_query: Optional[str] = None
    elapsed_ms: float = 0.0
    snapshot_version: int = 0
    skipped: int = 0
