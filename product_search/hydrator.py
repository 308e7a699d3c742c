"""Fetch display records for ranked ids.

The engine only returns ids and scores; hydrators turn a page of ids into
:class:`ProductSummary` payloads, preserving order and silently dropping ids
the backing store no longer knows.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol, Sequence

from elasticsearch import Elasticsearch

from .config import Settings, settings
from .domain import ProductStatus
from .importer import IN_STOCK_STATUSES, optional_float, parse_status
from .models import ProductSummary

logger = logging.getLogger(__name__)


class DisplayHydrator(Protocol):
    def hydrate(self, ids: Sequence[int], language: str) -> list[ProductSummary]: ...


def _localized(document: Mapping[str, Any], prefix: str, language: str, default: str) -> str | None:
    for lang in (language, default):
        value = document.get(f"{prefix}{lang.capitalize()}")
        if value:
            return str(value)
    return document.get(f"{prefix}En") or document.get(f"{prefix}Bg") or document.get(prefix)


def summarize(document: Mapping[str, Any], language: str, default_language: str = "en") -> ProductSummary:
    try:
        status: Optional[ProductStatus] = parse_status(document.get("status"))
    except ValueError:
        status = None
    categories = document.get("categories") or ([document["category"]] if document.get("category") else [])
    discount = optional_float(document.get("discount")) or 0.0
    on_sale = document["onSale"] if "onSale" in document else discount > 0
    in_stock = document["inStock"] if "inStock" in document else status in IN_STOCK_STATUSES
    return ProductSummary(
        id=int(document["id"]),
        name=_localized(document, "name", language, default_language),
        model=document.get("model"),
        referenceNumber=document.get("referenceNumber"),
        barcode=document.get("barcode"),
        manufacturerName=(document.get("manufacturer") or {}).get("name"),
        categoryName=_localized(categories[0], "name", language, default_language) if categories else None,
        finalPrice=optional_float(document.get("finalPrice")),
        discount=discount,
        status=status.name if status else None,
        statusName=status.label(language) if status else None,
        primaryImageUrl=document.get("primaryImageUrl"),
        featured=bool(document.get("featured", False)),
        onSale=bool(on_sale),
        inStock=bool(in_stock),
    )


class DocumentHydrator:
    """Hydrates from the raw documents the snapshot was built from."""

    def __init__(self, documents: Mapping[int, Mapping[str, Any]], config: Settings = settings) -> None:
        self.documents = documents
        self.config = config

    def hydrate(self, ids: Sequence[int], language: str) -> list[ProductSummary]:
        return [
            summarize(self.documents[product_id], language, self.config.default_language)
            for product_id in ids
            if product_id in self.documents
        ]


class ElasticsearchHydrator:
    def __init__(self, es: Elasticsearch, config: Settings = settings) -> None:
        self.es = es
        self.config = config

    def hydrate(self, ids: Sequence[int], language: str) -> list[ProductSummary]:
        if not ids:
            return []
        response = self.es.mget(index=self.config.es_index, ids=[str(product_id) for product_id in ids])
        found = {
            int(doc["_id"]): doc["_source"]
            for doc in response.get("docs", [])
            if doc.get("found")
        }
        missing = len(ids) - len(found)
        if missing:
            logger.warning("hydrate missing=%s of %s ids", missing, len(ids))
        return [
            summarize(found[product_id], language, self.config.default_language)
            for product_id in ids
            if product_id in found
        ]
