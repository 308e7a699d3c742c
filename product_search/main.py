"""FastAPI application wiring the search service."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from elasticsearch import ApiError, TransportError
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .cache import get_cache
from .config import Settings, settings
from .errors import InvalidQueryError, SearchTimeoutError, SnapshotUnavailableError
from .hydrator import DisplayHydrator, DocumentHydrator, ElasticsearchHydrator
from .importer import CatalogData, ElasticsearchCatalogLoader, import_if_empty, load_catalog_file, reindex_data
from .indexing import ensure_index, get_client
from .models import GlobalSearchRequest, GlobalSearchResponse, ParameterFilterModel, SearchSuggestionResponse
from .service import SearchService
from .snapshot import SnapshotHolder

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Force a predictable logging setup even when run under uvicorn, so timing
# lines from the engine and service are visible. ``force=True`` replaces
# uvicorn's default handlers.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Product Search Service")


def _load_catalog(config: Settings) -> tuple[CatalogData, DisplayHydrator]:
    if config.catalog_source == "elasticsearch":
        es = get_client()
        return ElasticsearchCatalogLoader(es, config).load(), ElasticsearchHydrator(es, config)
    catalog = load_catalog_file(config=config)
    return catalog, DocumentHydrator(catalog.documents, config)


async def refresh_snapshot(service: SearchService, holder: SnapshotHolder) -> int:
    catalog, hydrator = await asyncio.to_thread(_load_catalog, settings)
    snapshot = await asyncio.to_thread(
        holder.publish, catalog.candidates, catalog.labels, skipped=catalog.skipped
    )
    service.hydrator = hydrator
    return snapshot.version


async def _refresh_loop(service: SearchService, holder: SnapshotHolder, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            version = await refresh_snapshot(service, holder)
            logger.info("Refreshed catalog snapshot version=%s", version)
        except (ApiError, TransportError, OSError, KeyError, RuntimeError, ValueError) as exc:
            logger.warning("Snapshot refresh failed, keeping current snapshot: %s", exc)


@app.on_event("startup")
async def startup_event() -> None:
    holder = SnapshotHolder(settings)
    service = SearchService(holder, DocumentHydrator({}, settings), cache=get_cache(), config=settings)
    app.state.holder = holder
    app.state.service = service

    if settings.catalog_source == "elasticsearch":
        es = get_client()
        await ensure_index(es)
        if settings.load_on_startup:
            imported = await import_if_empty(es)
            if imported:
                logger.info("Imported %s products on startup", imported)
    version = await refresh_snapshot(service, holder)
    logger.info("Catalog snapshot version=%s ready from %s", version, settings.catalog_source)

    if settings.snapshot_refresh_seconds > 0:
        app.state.refresh_task = asyncio.create_task(
            _refresh_loop(service, holder, settings.snapshot_refresh_seconds)
        )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    task: Optional[asyncio.Task] = getattr(app.state, "refresh_task", None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def get_service(request: Request) -> SearchService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise SnapshotUnavailableError("Search service is not initialised")
    return service


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SearchTimeoutError)
async def timeout_handler(request: Request, exc: SearchTimeoutError) -> JSONResponse:
    logger.warning("Search timed out: %s", exc)
    return JSONResponse(status_code=504, content={"detail": str(exc)})


@app.exception_handler(SnapshotUnavailableError)
async def unavailable_handler(request: Request, exc: SnapshotUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
async def health(service: SearchService = Depends(get_service)) -> dict:
    snapshot = service.provider.current_snapshot()
    return {
        "catalogSource": settings.catalog_source,
        "snapshotVersion": snapshot.version,
        "products": len(snapshot),
        "skipped": snapshot.skipped,
    }


@app.post("/api/search/global", response_model=GlobalSearchResponse)
async def global_search(
    payload: GlobalSearchRequest,
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.search(payload)


@app.get("/api/search/quick", response_model=GlobalSearchResponse)
async def quick_search(
    q: str = Query(..., max_length=200, description="Search query"),
    categoryId: Optional[int] = None,
    manufacturerId: Optional[int] = None,
    minPrice: Optional[float] = None,
    maxPrice: Optional[float] = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    return await service.quick_search(
        q,
        category_id=categoryId,
        manufacturer_id=manufacturerId,
        min_price=minPrice,
        max_price=maxPrice,
        page=page,
        size=size,
        language=language,
    )


@app.get("/api/search/suggestions", response_model=SearchSuggestionResponse)
async def suggestions(
    q: str = Query(..., description="Prefix to complete"),
    limit: int = Query(10, ge=1, le=50),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> SearchSuggestionResponse:
    return await service.suggestions(q, limit=limit, language=language)


@app.get("/api/search/reference", response_model=GlobalSearchResponse)
async def reference_lookup(
    q: str = Query(..., min_length=1, description="Reference number"),
    exact: bool = True,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.reference_lookup(q, exact, page=page, size=size, language=language)


@app.get("/api/search/barcode", response_model=GlobalSearchResponse)
async def barcode_lookup(
    q: str = Query(..., min_length=1, description="Barcode"),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.barcode_lookup(q, language=language)


@app.get("/api/search/manufacturer/{manufacturer_id}", response_model=GlobalSearchResponse)
async def search_by_manufacturer(
    manufacturer_id: int,
    q: Optional[str] = Query(None, max_length=200),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.by_manufacturer(manufacturer_id, q, page=page, size=size, language=language)


@app.get("/api/search/category/{category_id}", response_model=GlobalSearchResponse)
async def search_by_category(
    category_id: int,
    q: Optional[str] = Query(None, max_length=200),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.by_category(category_id, q, page=page, size=size, language=language)


@app.post("/api/search/parameters", response_model=GlobalSearchResponse)
async def search_by_parameters(
    parameter_filters: list[ParameterFilterModel] = Body(...),
    q: Optional[str] = Query(None, max_length=200),
    categoryId: Optional[int] = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.search_by_parameters(
        parameter_filters, q, category_id=categoryId, page=page, size=size, language=language
    )


@app.get("/api/search/trending", response_model=GlobalSearchResponse)
async def trending(
    categoryId: Optional[int] = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    language: str = "en",
    service: SearchService = Depends(get_service),
) -> GlobalSearchResponse:
    return await service.trending(category_id=categoryId, page=page, size=size, language=language)


@app.post("/reindex")
async def reindex() -> dict:
    es = get_client()
    count = await reindex_data(es)
    response: dict = {"indexed": count}
    service = getattr(app.state, "service", None)
    if service is not None:
        response["snapshotVersion"] = await refresh_snapshot(service, app.state.holder)
    return response
