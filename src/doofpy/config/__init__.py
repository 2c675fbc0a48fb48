"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_float, env_int, require_env_var, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .google import GoogleMapsConfig, get_google_maps_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "GoogleMapsConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "env_int",
    "get_database_config",
    "get_google_maps_config",
    "get_reconciliation_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
