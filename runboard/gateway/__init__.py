"""Persistence and roster adapters for the run board."""

from .base import PersistenceGateway, RosterSource
from .facility_api import FacilityApiClient, FacilityApiConfig, FacilityApiGateway, FacilityApiRoster
from .pocketbase_gateway import PocketBaseGateway, PocketBaseRoster

__all__ = [
    "FacilityApiClient",
    "FacilityApiConfig",
    "FacilityApiGateway",
    "FacilityApiRoster",
    "PersistenceGateway",
    "PocketBaseGateway",
    "PocketBaseRoster",
    "RosterSource",
]
