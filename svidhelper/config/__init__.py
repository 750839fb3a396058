"""
Configuration package.

This module provides:
- load_config() for reading the helper's YAML configuration
- SidecarConfig / LoggingConfig schemas (pydantic)
- parse_duration() for duration strings such as "5s" or "1m30s"
"""

from .config import (
    apply_env_overrides,
    collect_env_overrides,
    load_config,
    resolve_variables,
    validate_config,
)
from .constants import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_TIMEOUT_SECS,
    ENV_PREFIX,
    MAX_CONFIG_SIZE_BYTES,
)
from .duration import InvalidDurationError, parse_duration
from .schemas import LoggingConfig, SidecarConfig

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_TIMEOUT_SECS",
    "ENV_PREFIX",
    "InvalidDurationError",
    "LoggingConfig",
    "MAX_CONFIG_SIZE_BYTES",
    "SidecarConfig",
    "apply_env_overrides",
    "collect_env_overrides",
    "load_config",
    "parse_duration",
    "resolve_variables",
    "validate_config",
]
