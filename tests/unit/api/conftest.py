"""
Fixtures for API tests.

The app is built with the session registry dependency overridden to use the
in-memory backend from the root conftest.
"""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

# Set before any imports that might load settings
os.environ["SKIP_PB_AUTH"] = "true"

from api.dependencies import get_registry, reset_registry  # noqa: E402
from api.main import create_app  # noqa: E402
from api.services.board_sessions import BoardSessionRegistry  # noqa: E402
from runboard.config import BoardConfig  # noqa: E402


@pytest.fixture
def registry(seeded_backend):
    gateway, roster = seeded_backend
    return BoardSessionRegistry(gateway, roster, BoardConfig(gateway_timeout_seconds=0.5))


@pytest.fixture
def gateway(registry):
    return registry.gateway


@pytest.fixture
def client(registry):
    app = create_app()
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    reset_registry()
