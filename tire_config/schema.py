"""
Configuration schema (``tire_config.schema``).

Frozen dataclasses describing one allocation configuration.  Parsed from
YAML by ``tire_config.loader``; never constructed from environment
variables or feature flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CacheSettings:
    url: str | None = None
    key_prefix: str = "stock"
    workers: int = 1
    ttl_seconds: int | None = 300


@dataclass(frozen=True)
class AllocationConfig:
    """The sole runtime configuration artifact."""

    config_id: str
    version: int
    quotas: dict[str, int]
    quota_excluded_statuses: tuple[str, ...]
    min_quantity: int
    max_quantity: int
    cache: CacheSettings = field(default_factory=CacheSettings)
    verification_base_url: str = "http://localhost:3000"
    database_url: str | None = None
    checksum: str = ""
