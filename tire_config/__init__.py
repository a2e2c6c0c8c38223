"""
tire_config -- single public entrypoint for allocation configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  It loads the YAML file, validates it, and returns a frozen
    ``AllocationConfig``.  The kernel never imports this package;
    ``tire_config.bridges`` translates the config into kernel inputs.

Audit relevance:
    Every successful call emits a ``TIRE_CONFIG_TRACE`` log entry with the
    config id, version, checksum and quota table, tying each allocation to
    the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tire_config.loader import load_config
from tire_config.schema import AllocationConfig, CacheSettings

_logger = logging.getLogger("tire_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

__all__ = ["AllocationConfig", "CacheSettings", "get_active_config"]


def get_active_config(config_path: Path | None = None) -> AllocationConfig:
    """Load and validate the allocation configuration.

    Args:
        config_path: YAML file to load.  Defaults to tire_config/defaults.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    config = load_config(Path(config_path) if config_path else DEFAULT_CONFIG_PATH)

    _logger.info(
        "TIRE_CONFIG_TRACE",
        extra={
            "trace_type": "TIRE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "quotas": dict(config.quotas),
            "quota_excluded_statuses": list(config.quota_excluded_statuses),
            "cache_backend": "redis" if config.cache.url else "memory",
        },
    )
    return config
