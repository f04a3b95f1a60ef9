"""Tests for api/settings module."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from api.settings import Settings


class TestGatewayBackend:
    """Tests for Settings.gateway_backend validation."""

    def test_defaults_to_pocketbase(self):
        with patch.dict("os.environ", {}, clear=True):
            assert Settings(_env_file=None).gateway_backend == "pocketbase"

    def test_normalizes_case(self):
        with patch.dict("os.environ", {"GATEWAY_BACKEND": "Facility_API"}, clear=True):
            assert Settings(_env_file=None).gateway_backend == "facility_api"

    def test_rejects_unknown_backend(self):
        with patch.dict("os.environ", {"GATEWAY_BACKEND": "sqlite"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_timeout_must_be_positive(self):
        with patch.dict("os.environ", {"FACILITY_API_TIMEOUT_SECONDS": "0"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestAllowedOrigins:
    """Tests for the comma-separated CORS origins."""

    def test_default_origins(self):
        with patch.dict("os.environ", {}, clear=True):
            assert Settings(_env_file=None).allowed_origins == ["http://localhost:3000", "http://localhost:5173"]

    def test_parses_and_strips(self):
        env = {"ALLOWED_ORIGINS": " https://board.example.com , ,http://localhost:8080"}
        with patch.dict("os.environ", env, clear=True):
            assert Settings(_env_file=None).allowed_origins == [
                "https://board.example.com",
                "http://localhost:8080",
            ]


class TestAdminPassword:
    """Tests for the insecure-password warning."""

    def test_warns_on_default_password(self, caplog):
        with patch.dict("os.environ", {"POCKETBASE_ADMIN_PASSWORD": "admin"}, clear=True):
            Settings(_env_file=None)
        assert "POCKETBASE_ADMIN_PASSWORD" in caplog.text

    def test_strong_password_is_quiet(self, caplog):
        with patch.dict("os.environ", {"POCKETBASE_ADMIN_PASSWORD": "c0rrect-h0rse"}, clear=True):
            settings = Settings(_env_file=None)
        assert settings.pocketbase_admin_password == "c0rrect-h0rse"
        assert "SECURITY WARNING" not in caplog.text
