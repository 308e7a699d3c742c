"""Async search service: snapshot + engine + hydrator + cache."""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Optional

from .assembler import assemble_response, assemble_suggestions
from .cache import CacheBackend, cache_key
from .config import Settings, settings as default_settings
from .domain import SearchMode, SortDirection, SortKey
from .engine import MAX_PAGE_SIZE, SearchEngine
from .hydrator import DisplayHydrator
from .models import GlobalSearchRequest, GlobalSearchResponse, ParameterFilterModel, SearchSuggestionResponse
from .snapshot import SnapshotProvider

logger = logging.getLogger(__name__)


class SearchService:
    def __init__(
        self,
        provider: SnapshotProvider,
        hydrator: DisplayHydrator,
        engine: Optional[SearchEngine] = None,
        cache: Optional[CacheBackend] = None,
        config: Settings = default_settings,
    ) -> None:
        self.provider = provider
        self.hydrator = hydrator
        self.engine = engine or SearchEngine(config)
        self.cache = cache
        self.config = config

    async def search(self, payload: GlobalSearchRequest) -> GlobalSearchResponse:
        request = payload.to_domain()
        # One snapshot reference for the whole request, even if a refresh lands meanwhile.
        snapshot = self.provider.current_snapshot()

        key = cache_key("search", snapshot.version, payload.model_dump(mode="json"))
        if self.cache is not None:
            t_cache = perf_counter()
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(
                    "timing: total=%.2fms cache_hit=1 q=%r version=%s",
                    (perf_counter() - t_cache) * 1000,
                    payload.query,
                    snapshot.version,
                )
                return GlobalSearchResponse.model_validate(cached)

        t0 = perf_counter()
        outcome = await asyncio.to_thread(self.engine.search, request, snapshot)
        t1 = perf_counter()
        ids = [result.candidate_id for result in outcome.results]
        products = await asyncio.to_thread(self.hydrator.hydrate, ids, request.language)
        t2 = perf_counter()
        response = assemble_response(outcome, products)

        logger.info(
            "timing: total=%.2fms engine=%.2fms hydrate=%.2fms cache_hit=0 q=%r hits=%s version=%s",
            (t2 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            payload.query,
            outcome.total,
            snapshot.version,
        )
        if self.cache is not None:
            self.cache.set(key, response.model_dump(mode="json"), self.config.cache_ttl_seconds)
        return response

    async def quick_search(
        self,
        query: str,
        *,
        category_id: Optional[int] = None,
        manufacturer_id: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        page: int = 0,
        size: int = 20,
        language: str = "en",
    ) -> GlobalSearchResponse:
        return await self.search(
            GlobalSearchRequest(
                query=query,
                categoryId=category_id,
                manufacturerId=manufacturer_id,
                minPrice=min_price,
                maxPrice=max_price,
                searchMode=SearchMode.SMART,
                page=page,
                size=size,
                language=language,
            )
        )

    async def reference_lookup(
        self,
        reference: str,
        exact: bool = True,
        *,
        page: int = 0,
        size: int = 20,
        language: str = "en",
    ) -> GlobalSearchResponse:
        """Exact lookup compares whole values; partial lookup tolerates typos."""
        return await self.search(
            GlobalSearchRequest(
                referenceNumber=reference,
                searchMode=SearchMode.SPECIFIC_FIELDS,
                exactMatch=exact,
                fuzzySearch=not exact,
                page=page,
                size=size,
                language=language,
            )
        )

    async def barcode_lookup(self, barcode: str, *, language: str = "en") -> GlobalSearchResponse:
        return await self.search(
            GlobalSearchRequest(
                barcode=barcode,
                searchMode=SearchMode.SPECIFIC_FIELDS,
                exactMatch=True,
                size=MAX_PAGE_SIZE,
                language=language,
            )
        )

    async def by_manufacturer(
        self,
        manufacturer_id: int,
        query: Optional[str] = None,
        *,
        page: int = 0,
        size: int = 20,
        language: str = "en",
    ) -> GlobalSearchResponse:
        return await self.search(
            GlobalSearchRequest(
                query=query,
                manufacturerId=manufacturer_id,
                page=page,
                size=size,
                language=language,
            )
        )

    async def by_category(
        self,
        category_id: int,
        query: Optional[str] = None,
        *,
        page: int = 0,
        size: int = 20,
        language: str = "en",
    ) -> GlobalSearchResponse:
        return await self.search(
            GlobalSearchRequest(
                query=query,
                categoryId=category_id,
                page=page,
                size=size,
                language=language,
            )
        )

    async def search_by_parameters(
        self,
        parameter_filters: list[ParameterFilterModel],
        query: Optional[str] = None,
        *,
        category_id: Optional[int] = None,
        page: int = 0,
        size: int = 20,
        language: str = "en",
    ) -> GlobalSearchResponse:
        return await self.search(
            GlobalSearchRequest(
                query=query,
                categoryId=category_id,
                parameterFilters=parameter_filters,
                page=page,
                size=size,
                language=language,
            )
        )

    async def trending(
        self,
        *,
        category_id: Optional[int] = None,
        page: int = 0,
        size: int = 20,
        language: str = "en",
    ) -> GlobalSearchResponse:
        """Featured products, most popular first."""
        return await self.search(
            GlobalSearchRequest(
                categoryId=category_id,
                featured=True,
                sortBy=SortKey.POPULARITY,
                sortDirection=SortDirection.DESC,
                page=page,
                size=size,
                language=language,
            )
        )

    async def suggestions(self, prefix: str, *, limit: Optional[int] = None, language: str = "en") -> SearchSuggestionResponse:
        snapshot = self.provider.current_snapshot()
        started = perf_counter()
        grouped = await asyncio.to_thread(
            self.engine.suggest,
            snapshot,
            prefix,
            language,
            limit or self.config.suggestion_limit,
        )
        elapsed_ms = (perf_counter() - started) * 1000
        logger.info("timing: total=%.2fms suggestions q=%r found=%s", elapsed_ms, prefix, grouped.total)
        return assemble_suggestions(grouped, elapsed_ms)
