"""Configuration type definitions.

Defines the schema for configuration keys including types and validation rules.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ConfigType(Enum):
    """Supported configuration value types."""

    INT = "int"
    FLOAT = "float"
    TIME = "time"


@dataclass
class ConfigKey:
    """
    Definition of a configuration key with validation rules.

    Attributes:
        key: The dot-notation config key (e.g., "slots.grid_start")
        config_type: The expected type of the value
        default: Value used when neither environment nor database provide one
        description: Human-readable description
        min_value: Minimum allowed value (for numeric types)
        max_value: Maximum allowed value (for numeric types)
    """

    key: str
    config_type: ConfigType
    default: Any
    description: str = ""
    min_value: float | None = None
    max_value: float | None = None

    def validate(self, value: Any) -> str | None:
        """
        Validate a value against this key's rules.

        Returns:
            None if valid, error message string if invalid
        """
        if self.config_type in (ConfigType.INT, ConfigType.FLOAT):
            if self.min_value is not None and value < self.min_value:
                return f"Value {value} below minimum {self.min_value}"
            if self.max_value is not None and value > self.max_value:
                return f"Value {value} above maximum {self.max_value}"

        if self.config_type == ConfigType.TIME and not _HHMM.match(str(value)):
            return f"Value {value} is not a HH:MM time"

        return None
