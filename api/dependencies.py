"""
Shared dependencies for the Run Board API.

This module provides:
- PocketBase client management (global instance, admin authentication)
- Gateway and roster construction for the configured backend
- The board session registry (one working board per date)
"""

from __future__ import annotations

import asyncio
import logging

from pocketbase import PocketBase

from runboard.config import BoardConfig, ConfigLoader
from runboard.gateway import (
    FacilityApiClient,
    FacilityApiConfig,
    FacilityApiGateway,
    FacilityApiRoster,
    PersistenceGateway,
    PocketBaseGateway,
    PocketBaseRoster,
    RosterSource,
)

from .services.board_sessions import BoardSessionRegistry
from .settings import get_settings

logger = logging.getLogger(__name__)

# ========================================
# PocketBase Client
# ========================================

# Single admin-authenticated client shared by the gateway, roster and config loader
_settings = get_settings()
pb_url = _settings.pocketbase_url
pb = PocketBase(pb_url)


class AuthState:
    """Shared state object for the PocketBase client."""

    pb_client: PocketBase | None = None


auth_state = AuthState()


async def authenticate_pb() -> None:
    """Authenticate with PocketBase as admin."""
    settings = get_settings()
    try:
        await asyncio.to_thread(
            pb.collection("_superusers").auth_with_password,
            settings.pocketbase_admin_email,
            settings.pocketbase_admin_password,
        )
        auth_state.pb_client = pb
        logger.info("Successfully authenticated with PocketBase")
    except Exception as e:
        logger.error(f"Failed to authenticate with PocketBase: {e}")
        raise


async def get_pb_client() -> PocketBase:
    """FastAPI dependency to get authenticated PocketBase client."""
    return pb


# ========================================
# Gateway Construction
# ========================================


def build_board_config() -> BoardConfig:
    """Board tuning values from the environment and the PocketBase config collection."""
    ConfigLoader.initialize(pb)
    return BoardConfig.from_loader()


def build_backends(config: BoardConfig) -> tuple[PersistenceGateway, RosterSource]:
    """Gateway and roster for the backend selected by GATEWAY_BACKEND."""
    settings = get_settings()
    if settings.gateway_backend == "facility_api":
        client = FacilityApiClient(
            FacilityApiConfig(
                base_url=settings.facility_api_url,
                token=settings.facility_api_token or None,
                timeout_seconds=settings.facility_api_timeout_seconds,
            )
        )
        logger.info(f"Using facility API backend at {settings.facility_api_url}")
        return FacilityApiGateway(client), FacilityApiRoster(client)

    logger.info(f"Using PocketBase backend at {pb_url}")
    return PocketBaseGateway(pb, config), PocketBaseRoster(pb)


# ========================================
# Board Sessions
# ========================================

_registry: BoardSessionRegistry | None = None


def get_registry() -> BoardSessionRegistry:
    """FastAPI dependency returning the process-wide session registry."""
    global _registry
    if _registry is None:
        config = build_board_config()
        gateway, roster = build_backends(config)
        _registry = BoardSessionRegistry(gateway, roster, config)
    return _registry


def reset_registry() -> None:
    """Drop all sessions (used on shutdown and in tests)."""
    global _registry
    _registry = None


__all__ = [
    "pb",
    "pb_url",
    "auth_state",
    "authenticate_pb",
    "get_pb_client",
    "build_backends",
    "build_board_config",
    "get_registry",
    "reset_registry",
]
