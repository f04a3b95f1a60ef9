"""
Application settings using pydantic-settings for type-safe configuration.

All environment variables are centralized here with proper typing, validation,
and sensible defaults. Settings are loaded once at startup and cached.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

GATEWAY_BACKENDS = ("pocketbase", "facility_api")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    Production values should be set via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === PocketBase Configuration ===
    pocketbase_url: str = Field(
        default="http://127.0.0.1:8090",
        description="PocketBase server URL",
    )
    pocketbase_admin_email: str = Field(
        default="admin@facility.local",
        description="PocketBase admin email for API authentication",
    )
    pocketbase_admin_password: str = Field(
        default="",
        description="PocketBase admin password (required - no default for security)",
    )
    skip_pb_auth: bool = Field(
        default=False,
        description="Skip PocketBase authentication on startup (for testing)",
    )

    @field_validator("pocketbase_admin_password", mode="after")
    @classmethod
    def validate_admin_password(cls, v: str) -> str:
        """Warn when the admin password is unset or an obvious default."""
        if v in {"password", "admin", "123456", ""}:
            logger.warning(
                "SECURITY WARNING: POCKETBASE_ADMIN_PASSWORD is not set or uses an insecure default. "
                "Set a strong password in your .env file for production use."
            )
        return v

    # === Persistence Backend ===
    gateway_backend: str = Field(
        default="pocketbase",
        description="Where runs and assignments live: 'pocketbase' or 'facility_api'",
    )
    facility_api_url: str = Field(
        default="http://127.0.0.1:4000",
        description="Base URL of the facility REST backend",
    )
    facility_api_token: str = Field(
        default="",
        description="Bearer token for the facility REST backend",
    )
    facility_api_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP request timeout for the facility REST backend",
    )

    @field_validator("gateway_backend", mode="after")
    @classmethod
    def validate_gateway_backend(cls, v: str) -> str:
        """Validate and normalize gateway_backend."""
        v = v.lower()
        if v not in GATEWAY_BACKENDS:
            raise ValueError(f"Invalid GATEWAY_BACKEND: {v}. Must be one of {', '.join(GATEWAY_BACKENDS)}")
        return v

    # === CORS Configuration ===
    # Note: Use str type for env var parsing, convert to list via property
    allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="ALLOWED_ORIGINS",
        description="Allowed CORS origins (comma-separated)",
    )

    # === System Settings ===
    tz: str = Field(
        default="America/Los_Angeles",
        description="Facility timezone; board times are wall-clock in this zone",
    )

    @property
    def allowed_origins(self) -> list[str]:
        """Parse comma-separated origins string into list."""
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the application.
    Use this function to access settings throughout the codebase.
    """
    return Settings()
