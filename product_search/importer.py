"""Catalog loading: JSON offers file or Elasticsearch index -> snapshot data.

Documents use the platform's camelCase product shape::

    {
      "id": 42, "nameEn": "...", "nameBg": "...", "descriptionEn": "...",
      "model": "...", "referenceNumber": "...", "barcode": "...",
      "categories": [{"id": 3, "nameEn": "Laptops", "nameBg": "Лаптопи"}],
      "manufacturer": {"id": 7, "name": "Lenovo"},
      "finalPrice": 1299.0, "discount": 0, "status": "AVAILABLE",
      "active": true, "show": true, "featured": false,
      "parameters": [{"parameterId": 1, "parameterNameEn": "RAM",
                      "optionId": 10, "optionNameEn": "16 GB"}],
      "warranty": 24, "weight": 1.4, "flags": ["new"],
      "createdAt": "2024-05-01T10:00:00Z", "popularity": 130
    }

Malformed documents are skipped and counted, never fatal.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from elasticsearch import Elasticsearch, helpers

from .config import Settings, settings
from .data_files import ensure_data_file, is_lfs_pointer
from .domain import Candidate, ProductStatus
from .indexing import drop_index, ensure_index, index_is_empty
from .snapshot import CatalogLabels

logger = logging.getLogger(__name__)

IN_STOCK_STATUSES = frozenset({ProductStatus.AVAILABLE, ProductStatus.LIMITED_QUANTITY})


@dataclass(frozen=True)
class CatalogData:
    candidates: tuple[Candidate, ...]
    labels: CatalogLabels
    documents: Mapping[int, dict] = field(default_factory=dict)
    skipped: int = 0


def _localized(raw: Mapping[str, Any], prefix: str, default_language: str) -> dict[str, str]:
    values = {}
    for language in ("en", "bg"):
        value = raw.get(f"{prefix}{language.capitalize()}")
        if value:
            values[language] = str(value)
    if not values and raw.get(prefix):
        values[default_language] = str(raw[prefix])
    return values


def optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got {value!r}")
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    number = optional_float(value)
    return None if number is None else int(number)


def parse_status(value: Any) -> ProductStatus:
    """Missing status means available; numeric code 0 is a real status."""
    if value is None or value == "":
        return ProductStatus.AVAILABLE
    return ProductStatus.parse(value)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _categories(raw: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    categories = list(raw.get("categories") or ())
    if raw.get("category"):
        categories.append(raw["category"])
    return categories


def parse_document(raw: Mapping[str, Any], default_language: str = "en") -> Candidate:
    """Build a :class:`Candidate`; raises ``KeyError/TypeError/ValueError`` when malformed."""

    status = parse_status(raw.get("status"))
    discount = optional_float(raw.get("discount")) or 0.0
    manufacturer = raw.get("manufacturer") or {}
    created_at = _parse_datetime(raw.get("createdAt"))
    return Candidate(
        id=int(raw["id"]),
        names=_localized(raw, "name", default_language),
        descriptions=_localized(raw, "description", default_language),
        model=str(raw.get("model") or ""),
        reference=str(raw.get("referenceNumber") or ""),
        barcode=str(raw.get("barcode") or ""),
        category_ids=frozenset(int(category["id"]) for category in _categories(raw)),
        manufacturer_id=_optional_int(manufacturer.get("id")),
        price=optional_float(raw.get("finalPrice")),
        status=status,
        active=bool(raw.get("active", True)),
        visible=bool(raw.get("show", True)),
        featured=bool(raw.get("featured", False)),
        on_sale=bool(raw["onSale"]) if "onSale" in raw else discount > 0,
        in_stock=bool(raw["inStock"]) if "inStock" in raw else status in IN_STOCK_STATUSES,
        parameters=frozenset(
            (int(parameter["parameterId"]), int(parameter["optionId"]))
            for parameter in raw.get("parameters") or ()
        ),
        warranty=_optional_int(raw.get("warranty")),
        weight=optional_float(raw.get("weight")),
        flags=frozenset(str(flag) for flag in raw.get("flags") or ()),
        created_at=created_at,
        popularity=int(raw.get("popularity") or 0),
    )


def build_catalog(raw_documents: Iterable[Mapping[str, Any]], config: Settings = settings) -> CatalogData:
    candidates: list[Candidate] = []
    documents: dict[int, dict] = {}
    categories: dict[int, dict[str, str]] = {}
    manufacturers: dict[int, str] = {}
    parameters: dict[int, dict[str, str]] = {}
    options: dict[int, dict[str, str]] = {}
    skipped = 0

    for raw in raw_documents:
        try:
            candidate = parse_document(raw, config.default_language)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed product %r: %s", raw.get("id") if isinstance(raw, Mapping) else raw, exc)
            skipped += 1
            continue
        candidates.append(candidate)
        documents[candidate.id] = dict(raw)

        for category in _categories(raw):
            names = _localized(category, "name", config.default_language)
            if names:
                categories.setdefault(int(category["id"]), {}).update(names)
        manufacturer = raw.get("manufacturer") or {}
        if candidate.manufacturer_id is not None and manufacturer.get("name"):
            manufacturers[candidate.manufacturer_id] = str(manufacturer["name"])
        for parameter in raw.get("parameters") or ():
            parameter_names = _localized(parameter, "parameterName", config.default_language)
            option_names = _localized(parameter, "optionName", config.default_language)
            if parameter_names:
                parameters.setdefault(int(parameter["parameterId"]), {}).update(parameter_names)
            if option_names:
                options.setdefault(int(parameter["optionId"]), {}).update(option_names)

    logger.info("Parsed catalog products=%s skipped=%s", len(candidates), skipped)
    return CatalogData(
        candidates=tuple(candidates),
        labels=CatalogLabels(
            categories=categories,
            manufacturers=manufacturers,
            parameters=parameters,
            options=options,
        ),
        documents=documents,
        skipped=skipped,
    )


def _load_documents(path: Path) -> list[dict]:
    if not path.exists():
        logger.warning("Catalog file %s is missing", path)
        return []
    if is_lfs_pointer(path):
        logger.warning("Catalog file %s is a Git LFS pointer; real data not downloaded", path)
        return []
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    # Either a bare list or a paginated {"products": [...]} export.
    if isinstance(payload, dict):
        return list(payload.get("products") or [])
    return list(payload)


def load_catalog_file(path: str | Path | None = None, config: Settings = settings) -> CatalogData:
    catalog_path = Path(path or config.catalog_path)
    if not catalog_path.exists() and config.catalog_source_url:
        catalog_path = ensure_data_file(catalog_path, config.catalog_source_url)
    return build_catalog(_load_documents(catalog_path), config)


def _iter_actions(index: str, documents: Iterable[Mapping[str, Any]]) -> Iterable[dict]:
    for document in documents:
        yield {
            "_index": index,
            "_id": str(document["id"]),
            "_source": dict(document),
        }


async def import_documents(es: Elasticsearch, documents: Iterable[Mapping[str, Any]], config: Settings = settings) -> int:
    actions = list(_iter_actions(config.es_index, documents))
    if not actions:
        return 0
    await asyncio.to_thread(helpers.bulk, es, actions)
    logger.info("Indexed %s products into %s", len(actions), config.es_index)
    return len(actions)


async def import_if_empty(es: Elasticsearch, config: Settings = settings) -> int:
    if not await index_is_empty(es, config):
        return 0
    catalog = load_catalog_file(config=config)
    return await import_documents(es, catalog.documents.values(), config)


async def reindex_data(es: Elasticsearch, config: Settings = settings) -> int:
    await drop_index(es, config)
    await ensure_index(es, config)
    catalog = load_catalog_file(config=config)
    return await import_documents(es, catalog.documents.values(), config)


class ElasticsearchCatalogLoader:
    """Reads every product document from the index to build a snapshot."""

    def __init__(self, es: Elasticsearch, config: Settings = settings) -> None:
        self.es = es
        self.config = config

    def load(self) -> CatalogData:
        hits = helpers.scan(self.es, index=self.config.es_index, query={"query": {"match_all": {}}})
        return build_catalog((hit.get("_source", {}) for hit in hits), self.config)
