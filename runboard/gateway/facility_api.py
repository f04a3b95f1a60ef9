"""REST client for the facility backend's run and booking endpoints.

Endpoints used:
    GET    /api/v1/runs/assignments?date=
    POST   /api/v1/runs/assignments                 (replace-all for a date)
    GET    /api/v1/runs/{runId}/available-slots?date=
    POST   /api/v1/runs/{runId}/assignments         (incremental assign)
    DELETE /api/v1/runs/{runId}/assignments         (incremental remove)
    GET    /api/v1/bookings?status=CHECKED_IN&from=&to=
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

import requests
from dotenv import load_dotenv

from ..errors import GatewayError, GatewayTimeoutError
from ..logging_config import TRACE, get_logger
from ..models import AssignmentRecord, BoardDay, Pet, SlotWindow
from .base import PersistenceGateway, RosterSource
from .schema import decode_assignments, decode_roster, decode_saved, decode_slots

logger = get_logger(__name__)

# Load environment variables
load_dotenv()


@dataclass
class FacilityApiConfig:
    """Connection settings for the facility backend."""

    base_url: str
    token: str | None = None
    timeout_seconds: float = 10.0
    max_retries: int = 3
    retry_delay_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> FacilityApiConfig:
        """Build config from FACILITY_API_URL, FACILITY_API_TOKEN and FACILITY_API_TIMEOUT_SECONDS."""
        base_url = os.getenv("FACILITY_API_URL")
        if not base_url:
            raise ValueError("FACILITY_API_URL must be set")
        return cls(
            base_url=base_url,
            token=os.getenv("FACILITY_API_TOKEN") or None,
            timeout_seconds=float(os.getenv("FACILITY_API_TIMEOUT_SECONDS", "10")),
        )


class FacilityApiClient:
    """Blocking JSON client; callers run it in a worker thread."""

    def __init__(self, config: FacilityApiConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.config.base_url.rstrip('/')}{path}"
        headers = {"X-Request-ID": f"REQ-{path.strip('/').replace('/', '-')}-{int(time.time())}"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"

        for attempt in range(self.config.max_retries):
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=data,
                    timeout=self.config.timeout_seconds,
                )
                response.raise_for_status()
            except requests.exceptions.Timeout as e:
                raise GatewayTimeoutError(f"{method} {path} timed out after {self.config.timeout_seconds}s") from e
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status == 429 and attempt < self.config.max_retries - 1:
                    wait_time = self.config.retry_delay_seconds * (2**attempt)
                    logger.warning(f"Rate limited on {method} {path}, retrying in {wait_time}s")
                    time.sleep(wait_time)
                    continue
                raise GatewayError(f"{method} {path} failed with status {status}") from e
            except requests.exceptions.RequestException as e:
                raise GatewayError(f"{method} {path} failed: {e}") from e

            logger.log(TRACE, f"{method} {path} -> {response.status_code}: {response.text[:500]}")
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise GatewayError(f"{method} {path} returned a non-JSON body") from e

        raise GatewayError(f"{method} {path} still rate limited after {self.config.max_retries} attempts")


class FacilityApiGateway(PersistenceGateway):
    """Runs and assignments served by the facility REST backend."""

    def __init__(self, client: FacilityApiClient):
        self.client = client

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self.client.request, method, path, **kwargs)

    async def fetch_for_date(self, board_date: date) -> BoardDay:
        payload = await self._call("GET", "/api/v1/runs/assignments", params={"date": board_date.isoformat()})
        return decode_assignments(board_date, payload)

    async def available_slots(self, run_id: str, board_date: date) -> list[SlotWindow]:
        payload = await self._call(
            "GET", f"/api/v1/runs/{run_id}/available-slots", params={"date": board_date.isoformat()}
        )
        return decode_slots(payload)

    async def save_all(self, board_date: date, records: Sequence[AssignmentRecord]) -> list[AssignmentRecord]:
        body = {
            "date": board_date.isoformat(),
            "assignments": [r.model_dump(by_alias=True, exclude_none=True) for r in records],
        }
        payload = await self._call("POST", "/api/v1/runs/assignments", data=body)
        return decode_saved(payload)

    async def assign_pets(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str],
        start_time: str | None = None,
        end_time: str | None = None,
        booking_ids: Sequence[str | None] | None = None,
    ) -> list[AssignmentRecord]:
        body: dict[str, Any] = {"date": board_date.isoformat(), "petIds": list(pet_ids)}
        if start_time:
            body["startTime"] = start_time
        if end_time:
            body["endTime"] = end_time
        if booking_ids:
            body["bookingIds"] = list(booking_ids)
        payload = await self._call("POST", f"/api/v1/runs/{run_id}/assignments", data=body)
        return decode_saved(payload)

    async def remove_assignments(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str] | None = None,
        assignment_ids: Sequence[str] | None = None,
    ) -> int:
        body: dict[str, Any] = {"date": board_date.isoformat()}
        if pet_ids:
            body["petIds"] = list(pet_ids)
        if assignment_ids:
            body["assignmentIds"] = list(assignment_ids)
        payload = await self._call("DELETE", f"/api/v1/runs/{run_id}/assignments", data=body)
        removed = payload.get("removed") if isinstance(payload, dict) else None
        return int(removed) if isinstance(removed, int) else len(pet_ids or []) + len(assignment_ids or [])


class FacilityApiRoster(RosterSource):
    """Checked-in pets from the bookings listing."""

    def __init__(self, client: FacilityApiClient):
        self.client = client

    async def checked_in_pets(self, board_date: date) -> list[Pet]:
        day = board_date.isoformat()
        payload = await asyncio.to_thread(
            self.client.request,
            "GET",
            "/api/v1/bookings",
            params={"status": "CHECKED_IN", "from": day, "to": day},
        )
        return decode_roster(payload)
