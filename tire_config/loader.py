"""
Configuration Loader (``tire_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into an
``AllocationConfig``.  Runtime callers go through
``tire_config.get_active_config()``; this module is its implementation.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError`` listing every problem found.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from tire_config.schema import AllocationConfig, CacheSettings

KNOWN_STATUSES = frozenset({"pending", "preparing", "ready", "delivered", "cancelled"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_cache(data: dict[str, Any] | None) -> CacheSettings:
    data = data or {}
    ttl = data.get("ttl_seconds", 300)
    return CacheSettings(
        url=data.get("url") or None,
        key_prefix=str(data.get("key_prefix", "stock")),
        workers=int(data.get("workers", 1)),
        ttl_seconds=int(ttl) if ttl is not None else None,
    )


def parse_config(data: dict[str, Any]) -> AllocationConfig:
    """Parse a raw YAML dict into an AllocationConfig (no validation)."""
    bounds = data.get("request_quantity") or {}
    return AllocationConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        quotas={str(k): int(v) for k, v in data["quotas"].items()},
        quota_excluded_statuses=tuple(
            str(s).lower() for s in data.get("quota_excluded_statuses") or ()
        ),
        min_quantity=int(bounds.get("min", 1)),
        max_quantity=int(bounds.get("max", 4)),
        cache=parse_cache(data.get("cache")),
        verification_base_url=str(
            (data.get("verification") or {}).get("base_url", "http://localhost:3000")
        ),
        database_url=(data.get("database") or {}).get("url"),
        checksum=compute_checksum(data),
    )


def validate_config(config: AllocationConfig) -> list[str]:
    """Return a list of problems; empty when the config is usable."""
    errors: list[str] = []
    if not config.quotas:
        errors.append("quotas: at least one category is required")
    for category, cap in config.quotas.items():
        if cap < 0:
            errors.append(f"quotas.{category}: must be >= 0, got {cap}")
    for status in config.quota_excluded_statuses:
        if status not in KNOWN_STATUSES:
            errors.append(f"quota_excluded_statuses: unknown status {status!r}")
    if not 1 <= config.min_quantity <= config.max_quantity:
        errors.append(
            f"request_quantity: need 1 <= min <= max, got "
            f"{config.min_quantity}..{config.max_quantity}"
        )
    if config.max_quantity > 4:
        errors.append("request_quantity.max: storage allows at most 4 per request")
    if config.cache.workers < 1:
        errors.append("cache.workers: must be >= 1")
    if config.cache.ttl_seconds is not None and config.cache.ttl_seconds < 1:
        errors.append("cache.ttl_seconds: must be >= 1 or null")
    return errors


def load_config(path: Path) -> AllocationConfig:
    """Load, parse and validate ``path``."""
    config = parse_config(load_yaml_file(path))
    errors = validate_config(config)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
    return config
