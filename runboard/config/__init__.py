"""
Board configuration management.

Usage:
    from runboard.config import BoardConfig, ConfigLoader

    # Optional: back the loader with PocketBase at application startup
    ConfigLoader.initialize(pb_client=pb)

    config = BoardConfig.from_loader()
    config.gateway_timeout_seconds
"""

from __future__ import annotations

from .errors import ConfigError, UnknownKeyError, ValidationError
from .loader import BoardConfig, ConfigLoader
from .schema import CONFIG_SCHEMA, get_schema_key, validate_key
from .types import ConfigKey, ConfigType

__all__ = [
    "BoardConfig",
    "ConfigLoader",
    "ConfigError",
    "UnknownKeyError",
    "ValidationError",
    "CONFIG_SCHEMA",
    "ConfigKey",
    "ConfigType",
    "get_schema_key",
    "validate_key",
]
