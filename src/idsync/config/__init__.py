"""Application configuration helpers."""

from __future__ import annotations

from .env import apply_env_overrides, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .loader import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, load_config, parse_config
from .sources import CsvSourceConfig, EndpointSourceConfig, LdapSourceConfig, SourceConfig
from .sync import SyncConfig
from .zitadel import ZitadelConfig

__all__ = [
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "ConfigurationError",
    "CsvSourceConfig",
    "EndpointSourceConfig",
    "LdapSourceConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SourceConfig",
    "SyncConfig",
    "ZitadelConfig",
    "apply_env_overrides",
    "load_config",
    "parse_config",
    "require_env_vars",
]
