"""Tests for the facility REST client and gateway."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
import requests

from runboard.errors import GatewayError, GatewayTimeoutError, SchemaMismatchError
from runboard.gateway.facility_api import (
    FacilityApiClient,
    FacilityApiConfig,
    FacilityApiGateway,
    FacilityApiRoster,
)
from runboard.models import AssignmentRecord


def make_response(status_code: int = 200, payload=None, content: bytes | None = None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.content = content if content is not None else (b"{}" if payload is not None else b"")
    response.text = str(payload)
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    config = FacilityApiConfig(base_url="http://facility.test/", token="secret", retry_delay_seconds=0)
    return FacilityApiClient(config, session=session)


class TestFacilityApiConfig:
    """Tests for environment-based configuration."""

    def test_from_env(self):
        env = {"FACILITY_API_URL": "http://facility.test", "FACILITY_API_TOKEN": "tok"}
        with patch.dict("os.environ", env, clear=True):
            config = FacilityApiConfig.from_env()
        assert config.base_url == "http://facility.test"
        assert config.token == "tok"
        assert config.timeout_seconds == 10.0

    def test_from_env_requires_url(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError):
                FacilityApiConfig.from_env()


class TestFacilityApiClient:
    """Tests for request handling and error mapping."""

    def test_sends_auth_header_and_json(self, client, session):
        session.request.return_value = make_response(payload={"ok": True})

        assert client.request("POST", "/api/v1/runs/assignments", data={"date": "2026-01-06"}) == {"ok": True}

        kwargs = session.request.call_args.kwargs
        assert kwargs["url"] == "http://facility.test/api/v1/runs/assignments"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["headers"]["X-Request-ID"].startswith("REQ-api-v1-runs-assignments-")
        assert kwargs["json"] == {"date": "2026-01-06"}
        assert kwargs["timeout"] == 10.0

    def test_empty_body_is_empty_dict(self, client, session):
        session.request.return_value = make_response(status_code=204)
        assert client.request("DELETE", "/api/v1/runs/run-a/assignments") == {}

    def test_timeout_maps_to_gateway_timeout(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(GatewayTimeoutError):
            client.request("GET", "/api/v1/bookings")

    def test_http_error_maps_to_gateway_error(self, client, session):
        session.request.return_value = make_response(status_code=500, payload={"error": "boom"})
        with pytest.raises(GatewayError, match="status 500"):
            client.request("GET", "/api/v1/bookings")

    def test_connection_error_maps_to_gateway_error(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(GatewayError):
            client.request("GET", "/api/v1/bookings")

    def test_rate_limit_is_retried(self, client, session):
        session.request.side_effect = [make_response(status_code=429), make_response(payload={"data": []})]
        assert client.request("GET", "/api/v1/bookings") == {"data": []}
        assert session.request.call_count == 2

    def test_rate_limit_gives_up(self, client, session):
        session.request.return_value = make_response(status_code=429)
        with pytest.raises(GatewayError):
            client.request("GET", "/api/v1/bookings")
        assert session.request.call_count == 3

    def test_non_json_body(self, client, session):
        response = make_response(content=b"<html>")
        response.json.side_effect = ValueError("not json")
        session.request.return_value = response
        with pytest.raises(GatewayError, match="non-JSON"):
            client.request("GET", "/api/v1/bookings")


class TestFacilityApiGateway:
    """Tests for endpoint paths and payload decoding."""

    @pytest.fixture
    def api(self):
        return Mock(spec=FacilityApiClient)

    @pytest.mark.asyncio
    async def test_fetch_for_date(self, api, board_date):
        api.request.return_value = {
            "runs": [{"id": "run-a", "name": "Run A"}],
            "assignments": [{"runId": "run-a", "petId": "pet-1", "startTime": "09:00", "endTime": "09:30"}],
        }

        day = await FacilityApiGateway(api).fetch_for_date(board_date)

        assert day.assignments["run-a"][0].pet.id == "pet-1"
        api.request.assert_called_once_with("GET", "/api/v1/runs/assignments", params={"date": "2026-01-06"})

    @pytest.mark.asyncio
    async def test_fetch_with_bad_payload(self, api, board_date):
        api.request.return_value = {"assignments": []}
        with pytest.raises(SchemaMismatchError):
            await FacilityApiGateway(api).fetch_for_date(board_date)

    @pytest.mark.asyncio
    async def test_save_all_posts_camel_case(self, api, board_date):
        record = AssignmentRecord(run_id="run-a", pet_id="pet-1", start_time="09:00", end_time="09:30")
        api.request.return_value = {"assignments": [record.model_dump(by_alias=True)]}

        saved = await FacilityApiGateway(api).save_all(board_date, [record])

        assert saved == [record]
        body = api.request.call_args.kwargs["data"]
        assert body == {
            "date": "2026-01-06",
            "assignments": [{"runId": "run-a", "petId": "pet-1", "startTime": "09:00", "endTime": "09:30"}],
        }

    @pytest.mark.asyncio
    async def test_available_slots(self, api, board_date):
        api.request.return_value = {"slots": [{"startTime": "09:00", "endTime": "09:30", "available": False}]}

        slots = await FacilityApiGateway(api).available_slots("run-a", board_date)

        assert slots[0].available is False
        assert api.request.call_args.args == ("GET", "/api/v1/runs/run-a/available-slots")

    @pytest.mark.asyncio
    async def test_assign_and_remove(self, api, board_date):
        gateway = FacilityApiGateway(api)
        api.request.return_value = {
            "assignments": [{"runId": "run-a", "petId": "pet-1", "startTime": "10:00", "endTime": "10:30"}]
        }

        saved = await gateway.assign_pets("run-a", board_date, ["pet-1"], "10:00", "10:30", ["bk-1"])

        assert saved[0].start_time == "10:00"
        assert api.request.call_args.kwargs["data"] == {
            "date": "2026-01-06",
            "petIds": ["pet-1"],
            "startTime": "10:00",
            "endTime": "10:30",
            "bookingIds": ["bk-1"],
        }

        api.request.return_value = {"removed": 1}
        assert await gateway.remove_assignments("run-a", board_date, pet_ids=["pet-1"]) == 1

        api.request.return_value = {}
        assert await gateway.remove_assignments("run-a", board_date, assignment_ids=["a1", "a2"]) == 2
        assert api.request.call_args.args == ("DELETE", "/api/v1/runs/run-a/assignments")

    @pytest.mark.asyncio
    async def test_roster(self, api, board_date):
        api.request.return_value = {"data": [{"id": "bk-1", "status": "CHECKED_IN", "pet": {"id": "pet-1"}}]}

        pets = await FacilityApiRoster(api).checked_in_pets(board_date)

        assert [p.id for p in pets] == ["pet-1"]
        assert api.request.call_args.kwargs["params"] == {
            "status": "CHECKED_IN",
            "from": "2026-01-06",
            "to": "2026-01-06",
        }
