"""Turn a :class:`SearchOutcome` into the public response contract."""
from __future__ import annotations

from typing import Optional, Sequence

from .domain import FacetSet, SearchOutcome
from .models import (
    CategoryFacet,
    GlobalSearchResponse,
    ManufacturerFacet,
    OptionFacet,
    ParameterFacet,
    PriceFacet,
    PriceRange,
    ProductSummary,
    SearchFacets,
    SearchMetadata,
    SearchPagination,
    SearchStats,
    SearchSuggestionResponse,
    StatusFacet,
)
from .suggestions import SearchSuggestions


def build_pagination(page: int, size: int, total: int, total_pages: int) -> SearchPagination:
    return SearchPagination(
        currentPage=page,
        pageSize=size,
        totalElements=total,
        totalPages=total_pages,
        hasNext=page + 1 < total_pages,
        hasPrevious=page > 0,
    )


def build_facets(facets: Optional[FacetSet]) -> Optional[SearchFacets]:
    if facets is None:
        return None
    return SearchFacets(
        categories=[
            CategoryFacet(id=int(bucket.value), name=bucket.label, count=bucket.count)
            for bucket in facets.categories
        ],
        manufacturers=[
            ManufacturerFacet(id=int(bucket.value), name=bucket.label, count=bucket.count)
            for bucket in facets.manufacturers
        ],
        parameters=[
            ParameterFacet(
                parameterId=facet.parameter_id,
                parameterName=facet.label,
                options=[
                    OptionFacet(optionId=int(option.value), optionName=option.label, count=option.count)
                    for option in facet.options
                ],
            )
            for facet in facets.parameters
        ],
        priceRanges=PriceFacet(
            ranges=[
                PriceRange(
                    label=bucket.label,
                    minPrice=bucket.minimum,
                    maxPrice=bucket.maximum,
                    count=bucket.count,
                )
                for bucket in facets.price_ranges
            ]
        ),
        statuses=[
            StatusFacet(status=bucket.value, statusName=bucket.label, count=bucket.count)
            for bucket in facets.statuses
        ],
    )


def assemble_response(outcome: SearchOutcome, products: Sequence[ProductSummary]) -> GlobalSearchResponse:
    """Merge hydrated products with the outcome's scores, facets and metadata.

    ``products`` must follow the order of ``outcome.results``; ids the
    hydrator could not resolve are simply absent.
    """

    scores = {result.candidate_id: result.score for result in outcome.results}
    ranked = [product.model_copy(update={"score": scores.get(product.id)}) for product in products]
    return GlobalSearchResponse(
        products=ranked,
        pagination=build_pagination(outcome.page, outcome.size, outcome.total, outcome.total_pages),
        stats=SearchStats(
            totalFound=outcome.total,
            searchTimeMs=round(outcome.elapsed_ms),
            maxScore=outcome.max_score,
            searchQuery=outcome.processed_query or None,
            searchedFields=list(outcome.searched_fields),
        ),
        facets=build_facets(outcome.facets),
        suggestions=list(outcome.suggestions),
        relatedQueries=list(outcome.related_queries),
        metadata=SearchMetadata(
            originalQuery=outcome.original_query or None,
            processedQuery=outcome.processed_query or None,
            appliedFilters=list(outcome.applied_filters),
            hasSpellingSuggestions=bool(outcome.suggestions or outcome.corrected_query),
            correctedQuery=outcome.corrected_query,
            snapshotVersion=outcome.snapshot_version,
            skippedCandidates=outcome.skipped,
        ),
    )


def assemble_suggestions(suggestions: SearchSuggestions, elapsed_ms: float) -> SearchSuggestionResponse:
    groups = suggestions.groups
    return SearchSuggestionResponse(
        productNames=list(groups.get("productNames", ())),
        manufacturers=list(groups.get("manufacturers", ())),
        categories=list(groups.get("categories", ())),
        models=list(groups.get("models", ())),
        referenceNumbers=list(groups.get("referenceNumbers", ())),
        keywords=list(suggestions.keywords),
        totalSuggestions=suggestions.total,
        query=suggestions.query,
        responseTimeMs=round(elapsed_ms),
    )
