"""
Config -> Kernel Bridges.

Convert an ``AllocationConfig`` into kernel inputs.  These live in
tire_config because the kernel must never import tire_config.

Usage:
    config = get_active_config()
    policy = build_quota_policy(config)
    mirror = build_cache_mirror(config)
    engine = init_engine_from_config(config)
    payload = build_verification_payload_for(config, request.token)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import Engine

from tire_config.schema import AllocationConfig
from tire_kernel.db.engine import init_engine_from_url
from tire_kernel.domain.quota_policy import QuotaPolicy
from tire_kernel.domain.tokens import VerificationPayload, build_verification_payload
from tire_kernel.models.request import RequestStatus
from tire_kernel.services.cache_mirror import (
    CacheMirror,
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
)


def build_quota_policy(config: AllocationConfig) -> QuotaPolicy:
    return QuotaPolicy(
        category_quotas=dict(config.quotas),
        excluded_statuses=frozenset(
            RequestStatus(s) for s in config.quota_excluded_statuses
        ),
        min_quantity=config.min_quantity,
        max_quantity=config.max_quantity,
    )


def build_cache_store(config: AllocationConfig) -> CacheStore:
    if config.cache.url:
        return RedisCacheStore.from_url(
            config.cache.url, ttl_seconds=config.cache.ttl_seconds
        )
    return InMemoryCacheStore()


def build_cache_mirror(
    config: AllocationConfig,
    store: CacheStore | None = None,
) -> CacheMirror:
    return CacheMirror(
        store if store is not None else build_cache_store(config),
        key_prefix=config.cache.key_prefix,
        max_workers=config.cache.workers,
    )


def build_verification_payload_for(
    config: AllocationConfig,
    token: str,
) -> VerificationPayload:
    """QR payload for ``token`` pointing at the configured validation host."""
    return build_verification_payload(token, config.verification_base_url)


def init_engine_from_config(config: AllocationConfig, **engine_options: Any) -> Engine:
    """Initialize the kernel engine on ``database.url``.

    ``engine_options`` are passed through to ``init_engine_from_url``.

    Raises:
        ValueError: If the configuration has no database URL.
    """
    if not config.database_url:
        raise ValueError(f"Config {config.config_id} has no database.url")
    return init_engine_from_url(config.database_url, **engine_options)
