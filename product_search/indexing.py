"""Elasticsearch client factory and index maintenance helpers.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` where they run inside the API.
"""
from __future__ import annotations

import asyncio
import json
import logging
from functools import lru_cache
from pathlib import Path

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import BadRequestError, NotFoundError

from .config import Settings, settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", settings.es_host)
    return Elasticsearch(settings.es_host)


def _load_mapping(mapping_path: Path) -> dict:
    with mapping_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


async def ensure_index(es: Elasticsearch, config: Settings = settings) -> None:
    """Create the products index from the mapping file if it is missing."""

    exists = await asyncio.to_thread(es.indices.exists, index=config.es_index)
    if exists:
        return
    mapping_path = Path(config.mapping_path)
    body = _load_mapping(mapping_path)
    logger.info("Creating index %s using %s", config.es_index, mapping_path)
    try:
        await asyncio.to_thread(
            es.indices.create,
            index=config.es_index,
            settings=body.get("settings"),
            mappings=body.get("mappings"),
        )
    except BadRequestError as exc:
        if getattr(exc, "error", "") == "resource_already_exists_exception":
            logger.info("Index %s already exists", config.es_index)
            return
        logger.exception("Failed to create index: %s", exc)
        raise


async def drop_index(es: Elasticsearch, config: Settings = settings) -> None:
    try:
        await asyncio.to_thread(es.indices.delete, index=config.es_index)
    except NotFoundError:
        return


async def index_is_empty(es: Elasticsearch, config: Settings = settings) -> bool:
    try:
        stats = await asyncio.to_thread(es.count, index=config.es_index)
        return stats.get("count", 0) == 0
    except NotFoundError:
        return True
