"""Configuration schema registry.

Defines all valid board configuration keys with their types, defaults and
validation rules. This is the single source of truth for configuration
structure.
"""

from __future__ import annotations

from typing import Any

from .types import ConfigKey, ConfigType

CONFIG_SCHEMA: dict[str, ConfigKey] = {
    # =========================================================================
    # RUNS
    # =========================================================================
    "board.default_max_capacity": ConfigKey(
        key="board.default_max_capacity",
        config_type=ConfigType.INT,
        default=10,
        description="Capacity used for runs that report no max capacity",
        min_value=1,
        max_value=500,
    ),
    # =========================================================================
    # SLOT SUGGESTIONS
    # =========================================================================
    "slots.default_step_minutes": ConfigKey(
        key="slots.default_step_minutes",
        config_type=ConfigType.INT,
        default=30,
        description="Window length suggested when a run has no time period",
        min_value=5,
        max_value=24 * 60,
    ),
    "slots.default_start_time": ConfigKey(
        key="slots.default_start_time",
        config_type=ConfigType.TIME,
        default="09:00",
        description="Start time suggested when no open window is known",
    ),
    "slots.grid_start": ConfigKey(
        key="slots.grid_start",
        config_type=ConfigType.TIME,
        default="07:00",
        description="First candidate start time of the fixed grid",
    ),
    "slots.grid_end": ConfigKey(
        key="slots.grid_end",
        config_type=ConfigType.TIME,
        default="20:00",
        description="End of the fixed grid (exclusive)",
    ),
    "slots.grid_interval_minutes": ConfigKey(
        key="slots.grid_interval_minutes",
        config_type=ConfigType.INT,
        default=15,
        description="Spacing of the fixed candidate grid",
        min_value=5,
        max_value=120,
    ),
    # =========================================================================
    # CAPACITY BANDS
    # =========================================================================
    "capacity.warning_percent": ConfigKey(
        key="capacity.warning_percent",
        config_type=ConfigType.INT,
        default=70,
        description="Utilization at which a run turns to warning",
        min_value=1,
        max_value=100,
    ),
    "capacity.critical_percent": ConfigKey(
        key="capacity.critical_percent",
        config_type=ConfigType.INT,
        default=90,
        description="Utilization at which a run turns critical",
        min_value=1,
        max_value=100,
    ),
    # =========================================================================
    # PERSISTENCE
    # =========================================================================
    "gateway.timeout_seconds": ConfigKey(
        key="gateway.timeout_seconds",
        config_type=ConfigType.FLOAT,
        default=10.0,
        description="Timeout applied to every persistence gateway call",
        min_value=0.1,
        max_value=300.0,
    ),
    # =========================================================================
    # SUGGESTIONS
    # =========================================================================
    "suggestions.max_pets": ConfigKey(
        key="suggestions.max_pets",
        config_type=ConfigType.INT,
        default=3,
        description="How many unassigned pets get a run suggestion",
        min_value=0,
        max_value=50,
    ),
}


def get_schema_key(key: str) -> ConfigKey | None:
    """Get the schema definition for a config key, or None if unknown."""
    return CONFIG_SCHEMA.get(key)


def validate_key(key: str, value: Any) -> str | None:
    """
    Validate a value against its schema.

    Returns:
        None if valid, error message if invalid
    """
    schema = CONFIG_SCHEMA.get(key)
    if schema is None:
        return f"Unknown config key: {key}"
    return schema.validate(value)
