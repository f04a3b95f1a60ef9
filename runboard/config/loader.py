"""
ConfigLoader - board tuning values with environment and database overrides.

Resolution order for every key:
    1. Environment variable CONFIG_<KEY> (dots become underscores)
    2. PocketBase ``config`` collection, when a client is configured
    3. Schema default

Values from any source are type-converted and validated against the schema.
"""

from __future__ import annotations

import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, cast

from pocketbase import PocketBase

from ..logging_config import get_logger
from .errors import UnknownKeyError, ValidationError
from .schema import CONFIG_SCHEMA
from .types import ConfigType

logger = get_logger(__name__)


class ConfigLoader:
    """
    Configuration loader with a process-wide singleton.

    Usage:
        # Optional: back the loader with PocketBase at application startup
        ConfigLoader.initialize(pb_client=pb)

        loader = ConfigLoader.get_instance()
        timeout = loader.get_float("gateway.timeout_seconds")

        # Test substitution
        with ConfigLoader.use(mock_loader):
            pass
    """

    _instance: ConfigLoader | None = None
    _initialized: bool = False

    def __init__(self, pb_client: PocketBase | None = None, cache_ttl_seconds: int = 300):
        self._pb = pb_client
        self._cache_ttl = cache_ttl_seconds
        self._cache: dict[str, tuple[Any, float]] = {}

    @classmethod
    def initialize(cls, pb_client: PocketBase | None = None) -> ConfigLoader:
        """Initialize the singleton ConfigLoader (idempotent)."""
        if cls._initialized and cls._instance is not None:
            logger.debug("ConfigLoader already initialized, returning existing instance")
            return cls._instance

        cls._instance = cls(pb_client=pb_client)
        cls._initialized = True
        source = "PocketBase + environment" if pb_client is not None else "environment"
        logger.info(f"ConfigLoader initialized ({source})")
        return cls._instance

    @classmethod
    def get_instance(cls) -> ConfigLoader:
        """Get the singleton instance, auto-initializing without a database."""
        if not cls._initialized or cls._instance is None:
            return cls.initialize()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton state. For testing only."""
        cls._instance = None
        cls._initialized = False

    @classmethod
    @contextmanager
    def use(cls, loader: ConfigLoader) -> Iterator[None]:
        """Temporarily replace the singleton with a custom loader."""
        original = cls._instance
        original_initialized = cls._initialized
        cls._instance = loader
        cls._initialized = True
        try:
            yield
        finally:
            cls._instance = original
            cls._initialized = original_initialized

    def _get_env_key(self, key: str) -> str:
        # slots.grid_start -> CONFIG_SLOTS_GRID_START
        return "CONFIG_" + key.upper().replace(".", "_")

    def get(self, key: str) -> Any:
        """
        Get a typed configuration value.

        Raises:
            UnknownKeyError: If key is not in schema
            ValidationError: If the resolved value fails conversion or validation
        """
        schema = CONFIG_SCHEMA.get(key)
        if schema is None:
            raise UnknownKeyError(f"Unknown config key: '{key}'")

        env_key = self._get_env_key(key)
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._checked(key, env_value, source=env_key)

        if key in self._cache:
            value, timestamp = self._cache[key]
            if time.time() - timestamp < self._cache_ttl:
                return value

        raw_value = self._query_database_raw(key)
        if raw_value is None:
            value = schema.default
        else:
            value = self._checked(key, raw_value, source="database")

        self._cache[key] = (value, time.time())
        return value

    def _checked(self, key: str, raw_value: Any, source: str) -> Any:
        schema = CONFIG_SCHEMA[key]
        try:
            typed_value = self._convert_type(raw_value, schema.config_type)
        except (ValueError, TypeError) as e:
            raise ValidationError(f"Config key '{key}' from {source} has invalid type: {e}") from e

        error = schema.validate(typed_value)
        if error:
            raise ValidationError(f"Config key '{key}' from {source}: {error}")
        return typed_value

    def get_int(self, key: str) -> int:
        return cast(int, self.get(key))

    def get_float(self, key: str) -> float:
        return cast(float, self.get(key))

    def get_time(self, key: str) -> str:
        return cast(str, self.get(key))

    def _query_database_raw(self, key: str) -> Any | None:
        """Query PocketBase for a config value, or None if unavailable."""
        if self._pb is None:
            return None

        category, config_key = key.split(".", 1)
        filter_str = f'category = "{category}" && config_key = "{config_key}"'

        try:
            record = self._pb.collection("config").get_first_list_item(filter_str)
            return record.value
        except Exception as e:
            logger.debug(f"Config key '{key}' not found in database: {e}")
            return None

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        if config_type == ConfigType.INT:
            return int(value)
        elif config_type == ConfigType.FLOAT:
            return float(value)
        return str(value).strip()

    def clear_cache(self) -> None:
        """Clear the configuration cache."""
        self._cache.clear()


@dataclass(frozen=True)
class BoardConfig:
    """Immutable snapshot of the values the board engine reads."""

    default_max_capacity: int = 10
    default_step_minutes: int = 30
    default_start_time: str = "09:00"
    grid_start: str = "07:00"
    grid_end: str = "20:00"
    grid_interval_minutes: int = 15
    warning_percent: int = 70
    critical_percent: int = 90
    gateway_timeout_seconds: float = 10.0
    suggestion_max_pets: int = 3

    @classmethod
    def from_loader(cls, loader: ConfigLoader | None = None) -> BoardConfig:
        """Build a snapshot from the (singleton) loader."""
        loader = loader or ConfigLoader.get_instance()
        config = cls(
            default_max_capacity=loader.get_int("board.default_max_capacity"),
            default_step_minutes=loader.get_int("slots.default_step_minutes"),
            default_start_time=loader.get_time("slots.default_start_time"),
            grid_start=loader.get_time("slots.grid_start"),
            grid_end=loader.get_time("slots.grid_end"),
            grid_interval_minutes=loader.get_int("slots.grid_interval_minutes"),
            warning_percent=loader.get_int("capacity.warning_percent"),
            critical_percent=loader.get_int("capacity.critical_percent"),
            gateway_timeout_seconds=loader.get_float("gateway.timeout_seconds"),
            suggestion_max_pets=loader.get_int("suggestions.max_pets"),
        )
        if config.warning_percent > config.critical_percent:
            raise ValidationError(
                f"capacity.warning_percent ({config.warning_percent}) must not exceed "
                f"capacity.critical_percent ({config.critical_percent})"
            )
        return config
