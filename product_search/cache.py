"""Response caching with Redis primary and in-memory fallback.

Keys embed the snapshot version, so publishing a new catalog snapshot makes
every older entry unreachable without an explicit flush.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import redis

from .config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "product-search"


def cache_key(kind: str, snapshot_version: int, payload: Dict[str, Any]) -> str:
    digest = hashlib.sha1(
        json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    ).hexdigest()
    return f"{KEY_PREFIX}:{kind}:v{snapshot_version}:{digest}"


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None: ...


@dataclass
class RedisCache:
    client: redis.Redis

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            data = self.client.get(key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed key=%s: %s", key, exc)
            return None
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry key=%s", key)
            return None

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        try:
            self.client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("Redis set failed key=%s: %s", key, exc)


class InMemoryCache:
    def __init__(self, clock=time.monotonic) -> None:
        self._store: Dict[str, tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at <= self._clock():
                del self._store[key]
                return None
            return payload

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        with self._lock:
            self._store[key] = (self._clock() + ttl, value)

    def __len__(self) -> int:
        return len(self._store)


_cache: CacheBackend | None = None


def get_cache() -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Using Redis cache at %s:%s", settings.redis_host, settings.redis_port)
        _cache = RedisCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        _cache = InMemoryCache()
    return _cache
