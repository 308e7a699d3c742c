"""Application configuration and search tuning constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_env_floats(name: str, default: str) -> tuple[float, ...]:
    raw = _get_env(name, default)
    return tuple(float(part) for part in raw.split(",") if part.strip())


def _get_env_bool(name: str, default: str) -> bool:
    return _get_env(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products")
    mapping_path: str = _get_env("MAPPING_PATH", "product-mapping.json")
    catalog_path: str = _get_env("CATALOG_PATH", "catalog.json")
    catalog_source_url: str = _get_env("CATALOG_SOURCE_URL", "")
    catalog_source: str = _get_env("CATALOG_SOURCE", "file")  # file | elasticsearch
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "300"))
    load_on_startup: bool = _get_env_bool("LOAD_ON_STARTUP", "true")
    snapshot_refresh_seconds: int = int(_get_env("SNAPSHOT_REFRESH_SECONDS", "0"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")

    # Query handling
    max_query_length: int = int(_get_env("MAX_QUERY_LENGTH", "200"))
    default_language: str = _get_env("DEFAULT_LANGUAGE", "en")
    languages: tuple[str, ...] = tuple(_get_env("LANGUAGES", "en,bg").split(","))
    request_timeout_ms: int = int(_get_env("REQUEST_TIMEOUT_MS", "2000"))

    # Ranking. SMART weights keep name > model/reference > description.
    smart_weight_name: float = float(_get_env("SMART_WEIGHT_NAME", "3.0"))
    smart_weight_model: float = float(_get_env("SMART_WEIGHT_MODEL", "2.0"))
    smart_weight_reference: float = float(_get_env("SMART_WEIGHT_REFERENCE", "2.0"))
    smart_weight_barcode: float = float(_get_env("SMART_WEIGHT_BARCODE", "2.0"))
    smart_weight_description: float = float(_get_env("SMART_WEIGHT_DESCRIPTION", "1.0"))
    smart_exact_name_boost: float = float(_get_env("SMART_EXACT_NAME_BOOST", "2.0"))
    smart_flag_boost: float = float(_get_env("SMART_FLAG_BOOST", "0.001"))
    minimum_token_match: float = float(_get_env("MINIMUM_TOKEN_MATCH", "1.0"))

    # Fuzzy matching: tokens longer than fuzzy_long_token_length tolerate
    # fuzzy_long_max_distance edits, shorter ones fuzzy_short_max_distance.
    fuzzy_long_token_length: int = int(_get_env("FUZZY_LONG_TOKEN_LENGTH", "4"))
    fuzzy_long_max_distance: int = int(_get_env("FUZZY_LONG_MAX_DISTANCE", "2"))
    fuzzy_short_max_distance: int = int(_get_env("FUZZY_SHORT_MAX_DISTANCE", "1"))
    fuzzy_penalty: float = float(_get_env("FUZZY_PENALTY", "0.25"))

    # Facets
    price_breakpoints: tuple[float, ...] = _get_env_floats(
        "PRICE_BREAKPOINTS", "50,100,200,500,1000,2000"
    )

    # Suggestions and spelling correction
    suggestion_limit: int = int(_get_env("SUGGESTION_LIMIT", "10"))
    related_query_limit: int = int(_get_env("RELATED_QUERY_LIMIT", "5"))
    min_results_for_correction: int = int(_get_env("MIN_RESULTS_FOR_CORRECTION", "1"))
    correction_max_distance: int = int(_get_env("CORRECTION_MAX_DISTANCE", "2"))

    def smart_weights(self) -> dict[str, float]:
        return {
            "name": self.smart_weight_name,
            "model": self.smart_weight_model,
            "reference": self.smart_weight_reference,
            "barcode": self.smart_weight_barcode,
            "description": self.smart_weight_description,
        }


settings = Settings()
