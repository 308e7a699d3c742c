"""Pydantic models for request/response payloads."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .domain import (
    FilterOperator,
    NumericRange,
    ParameterFilter,
    ProductStatus,
    SearchMode,
    SearchRequest,
    SortDirection,
    SortKey,
)
from .errors import InvalidQueryError


class ParameterFilterModel(BaseModel):
    parameterId: Optional[int] = None
    parameterName: Optional[str] = None
    optionIds: list[int] = Field(default_factory=list)
    optionValues: list[str] = Field(default_factory=list)
    operator: FilterOperator = FilterOperator.OR


class GlobalSearchRequest(BaseModel):
    query: Optional[str] = Field(None, max_length=200, description="Free-text search query")

    productName: Optional[str] = None
    description: Optional[str] = None
    referenceNumber: Optional[str] = None
    model: Optional[str] = None
    barcode: Optional[str] = None

    categoryId: Optional[int] = None
    categoryIds: list[int] = Field(default_factory=list)
    manufacturerId: Optional[int] = None
    manufacturerIds: list[int] = Field(default_factory=list)
    manufacturerName: Optional[str] = None

    minPrice: Optional[float] = None
    maxPrice: Optional[float] = None

    statuses: list[str] = Field(default_factory=list)
    onSale: Optional[bool] = None
    featured: Optional[bool] = None
    active: Optional[bool] = None
    inStock: Optional[bool] = None

    parameterFilters: list[ParameterFilterModel] = Field(default_factory=list)

    minWarranty: Optional[int] = None
    maxWarranty: Optional[int] = None
    minWeight: Optional[float] = None
    maxWeight: Optional[float] = None
    flags: list[str] = Field(default_factory=list)

    exactMatch: bool = False
    fuzzySearch: bool = False
    searchMode: SearchMode = SearchMode.ALL_FIELDS

    sortBy: SortKey = SortKey.RELEVANCE
    sortDirection: SortDirection = SortDirection.DESC

    page: int = Field(0, ge=0)
    size: int = Field(20, ge=1, le=100)

    language: str = "en"

    includeInactive: bool = False
    highlightResults: bool = False
    facetedSearch: bool = False
    timeoutMs: Optional[int] = Field(None, ge=1, description="Per-request timeout override")

    def to_domain(self) -> SearchRequest:
        """Convert the wire payload into the engine's request type."""
        try:
            statuses = frozenset(ProductStatus.parse(status) for status in self.statuses)
        except ValueError as exc:
            raise InvalidQueryError(str(exc)) from exc

        field_queries = {
            field_name: value
            for field_name, value in (
                ("name", self.productName),
                ("description", self.description),
                ("reference", self.referenceNumber),
                ("model", self.model),
                ("barcode", self.barcode),
            )
            if value and value.strip()
        }
        return SearchRequest(
            query=self.query or "",
            field_queries=field_queries,
            category_ids=merge_ids(self.categoryId, self.categoryIds),
            manufacturer_ids=merge_ids(self.manufacturerId, self.manufacturerIds),
            manufacturer_names=frozenset({self.manufacturerName} if self.manufacturerName else ()),
            price=NumericRange(self.minPrice, self.maxPrice),
            statuses=statuses,
            on_sale=self.onSale,
            featured=self.featured,
            active=self.active,
            in_stock=self.inStock,
            include_inactive=self.includeInactive,
            parameter_filters=tuple(
                ParameterFilter(
                    parameter_id=item.parameterId,
                    parameter_name=item.parameterName,
                    option_ids=frozenset(item.optionIds),
                    option_values=frozenset(item.optionValues),
                    operator=item.operator,
                )
                for item in self.parameterFilters
            ),
            warranty=NumericRange(self.minWarranty, self.maxWarranty),
            weight=NumericRange(self.minWeight, self.maxWeight),
            flags=frozenset(self.flags),
            exact_match=self.exactMatch,
            fuzzy_search=self.fuzzySearch,
            mode=self.searchMode,
            sort_by=self.sortBy,
            sort_direction=self.sortDirection,
            page=self.page,
            size=self.size,
            language=self.language,
            faceted=self.facetedSearch,
            timeout_ms=self.timeoutMs,
        )


def merge_ids(single: Optional[int], many: list[int]) -> frozenset[int]:
    ids = set(many)
    if single is not None:
        ids.add(single)
    return frozenset(ids)


class ProductSummary(BaseModel):
    id: int
    name: Optional[str] = None
    model: Optional[str] = None
    referenceNumber: Optional[str] = None
    barcode: Optional[str] = None
    manufacturerName: Optional[str] = None
    categoryName: Optional[str] = None
    finalPrice: Optional[float] = None
    discount: Optional[float] = None
    status: Optional[str] = None
    statusName: Optional[str] = None
    primaryImageUrl: Optional[str] = None
    featured: bool = False
    onSale: bool = False
    inStock: bool = False
    score: Optional[float] = None


class SearchPagination(BaseModel):
    currentPage: int
    pageSize: int
    totalElements: int
    totalPages: int
    hasNext: bool
    hasPrevious: bool


class SearchStats(BaseModel):
    totalFound: int
    searchTimeMs: int
    maxScore: float
    searchQuery: Optional[str] = None
    searchedFields: list[str] = Field(default_factory=list)


class CategoryFacet(BaseModel):
    id: int
    name: str
    count: int


class ManufacturerFacet(BaseModel):
    id: int
    name: str
    count: int


class OptionFacet(BaseModel):
    optionId: int
    optionName: str
    count: int


class ParameterFacet(BaseModel):
    parameterId: int
    parameterName: str
    options: list[OptionFacet]


class PriceRange(BaseModel):
    label: str
    minPrice: float
    maxPrice: Optional[float] = None
    count: int


class PriceFacet(BaseModel):
    ranges: list[PriceRange]


class StatusFacet(BaseModel):
    status: str
    statusName: str
    count: int


class SearchFacets(BaseModel):
    categories: list[CategoryFacet] = Field(default_factory=list)
    manufacturers: list[ManufacturerFacet] = Field(default_factory=list)
    parameters: list[ParameterFacet] = Field(default_factory=list)
    priceRanges: PriceFacet = Field(default_factory=lambda: PriceFacet(ranges=[]))
    statuses: list[StatusFacet] = Field(default_factory=list)


class SearchMetadata(BaseModel):
    originalQuery: Optional[str] = None
    processedQuery: Optional[str] = None
    appliedFilters: list[str] = Field(default_factory=list)
    hasSpellingSuggestions: bool = False
    correctedQuery: Optional[str] = None
    snapshotVersion: int = 0
    skippedCandidates: int = 0


class GlobalSearchResponse(BaseModel):
    products: list[ProductSummary]
    pagination: SearchPagination
    stats: SearchStats
    facets: Optional[SearchFacets] = None
    suggestions: list[str] = Field(default_factory=list)
    relatedQueries: list[str] = Field(default_factory=list)
    metadata: SearchMetadata


class SearchSuggestionResponse(BaseModel):
    productNames: list[str] = Field(default_factory=list)
    manufacturers: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    models: list[str] = Field(default_factory=list)
    referenceNumbers: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    totalSuggestions: int = 0
    query: str
    responseTimeMs: int = 0
