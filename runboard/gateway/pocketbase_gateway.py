"""PocketBase-backed persistence for runs, run assignments and bookings.

Collections:
    runs             - run definitions (is_active, sort_order, max_capacity, ...)
    run_assignments  - one record per pet per day; ``date`` is YYYY-MM-DD
    bookings         - stays, expanded with their pet and owner

Records are flattened into the same camelCase shapes the REST backend
returns and decoded through ``runboard.gateway.schema``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING, Any

from pocketbase.client import ClientResponseError  # type: ignore[attr-defined]

from ..board.slots import compute_end_time, compute_windows
from ..config import BoardConfig
from ..errors import GatewayError
from ..logging_config import TRACE, get_logger
from ..models import DEFAULT_MAX_CAPACITY, AssignmentRecord, BoardDay, Pet, SlotWindow
from .base import PersistenceGateway, RosterSource
from .schema import decode_assignments, decode_roster

if TYPE_CHECKING:
    from pocketbase import PocketBase

logger = get_logger(__name__)

RUNS = "runs"
ASSIGNMENTS = "run_assignments"
BOOKINGS = "bookings"


def _expanded(record: Any, name: str) -> Any:
    if hasattr(record, "expand") and record.expand:
        return record.expand.get(name)
    return None


def _str_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _quoted(value: str) -> str:
    """Double-quoted PocketBase filter literal with backslashes and quotes escaped."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _timestamp(value: Any) -> str | None:
    # PocketBase datetimes use a space separator: "2026-01-06 09:00:00.000Z"
    if not value:
        return None
    return str(value).replace(" ", "T", 1)


def run_row(record: Any, default_capacity: int = DEFAULT_MAX_CAPACITY) -> dict[str, Any]:
    return {
        "id": record.id,
        "name": str(getattr(record, "name", "")),
        "code": _str_or_none(getattr(record, "code", None)),
        "size": _str_or_none(getattr(record, "size", None)),
        "species": _str_or_none(getattr(record, "species", None)),
        "type": _str_or_none(getattr(record, "type", None)),
        "templateName": _str_or_none(getattr(record, "template_name", None)),
        "sortOrder": int(getattr(record, "sort_order", 0) or 0),
        "maxCapacity": int(getattr(record, "max_capacity", 0) or 0) or default_capacity,
        "timePeriodMinutes": int(getattr(record, "time_period_minutes", 0) or 0) or None,
        "capacityType": _str_or_none(getattr(record, "capacity_type", None)),
    }


def assignment_row(record: Any) -> dict[str, Any]:
    pet = _expanded(record, "pet")
    return {
        "id": record.id,
        "runId": str(getattr(record, "run", "")),
        "petId": str(getattr(record, "pet", "")),
        "petName": _str_or_none(getattr(pet, "name", None)),
        "petSpecies": _str_or_none(getattr(pet, "species", None)),
        "petBreed": _str_or_none(getattr(pet, "breed", None)),
        "petPhotoUrl": _str_or_none(getattr(pet, "photo_url", None)),
        "bookingId": _str_or_none(getattr(record, "booking", None)),
        "startTime": str(getattr(record, "start_time", "")),
        "endTime": str(getattr(record, "end_time", "")),
        "status": _str_or_none(getattr(record, "status", None)),
        "notes": _str_or_none(getattr(record, "notes", None)),
    }


def booking_row(record: Any) -> dict[str, Any]:
    pet = _expanded(record, "pet")
    owner = _expanded(record, "owner")
    row: dict[str, Any] = {
        "id": record.id,
        "status": str(getattr(record, "status", "")),
        "checkIn": _timestamp(getattr(record, "check_in", None)),
        "checkOut": _timestamp(getattr(record, "check_out", None)),
        "service": {"name": _str_or_none(getattr(record, "service_name", None))},
    }
    if pet is not None:
        row["pet"] = {
            "id": pet.id,
            "name": _str_or_none(getattr(pet, "name", None)),
            "species": _str_or_none(getattr(pet, "species", None)),
            "breed": _str_or_none(getattr(pet, "breed", None)),
            "photoUrl": _str_or_none(getattr(pet, "photo_url", None)),
            "behaviorFlags": getattr(pet, "behavior_flags", None),
            "medicalNotes": _str_or_none(getattr(pet, "medical_notes", None)),
            "dietaryNotes": _str_or_none(getattr(pet, "dietary_notes", None)),
        }
    if owner is not None:
        row["owner"] = {
            "id": owner.id,
            "firstName": _str_or_none(getattr(owner, "first_name", None)),
            "lastName": _str_or_none(getattr(owner, "last_name", None)),
            "phone": _str_or_none(getattr(owner, "phone", None)),
            "email": _str_or_none(getattr(owner, "email", None)),
        }
    return row


def _record_data(board_date: date, record: AssignmentRecord) -> dict[str, Any]:
    return {
        "run": record.run_id,
        "pet": record.pet_id,
        "date": board_date.isoformat(),
        "start_time": record.start_time,
        "end_time": record.end_time,
        "booking": record.booking_id or "",
        "notes": record.notes or "",
    }


class PocketBaseGateway(PersistenceGateway):
    """Runs and assignments stored in PocketBase collections."""

    def __init__(self, pb: PocketBase, config: BoardConfig | None = None):
        self.pb = pb
        self.config = config or BoardConfig()

    async def _assignment_records(self, board_date: date, run_id: str | None = None) -> list[Any]:
        filter_str = f"date = {_quoted(board_date.isoformat())}"
        if run_id:
            filter_str += f" && run = {_quoted(run_id)}"
        return await asyncio.to_thread(
            self.pb.collection(ASSIGNMENTS).get_full_list,
            query_params={"filter": filter_str, "sort": "created", "expand": "pet"},
        )

    async def fetch_for_date(self, board_date: date) -> BoardDay:
        try:
            runs = await asyncio.to_thread(
                self.pb.collection(RUNS).get_full_list,
                query_params={"filter": "is_active = true", "sort": "sort_order,name"},
            )
            records = await self._assignment_records(board_date)
        except ClientResponseError as e:
            raise GatewayError(f"Failed to load board for {board_date}: {e}") from e

        # Latest modification stamp of the day doubles as its version token
        stamps = [str(getattr(r, "updated", "")) for r in records if getattr(r, "updated", None)]
        payload = {
            "runs": [run_row(r, self.config.default_max_capacity) for r in runs],
            "assignments": [assignment_row(r) for r in records],
            "epoch": f"{len(records)}:{max(stamps)}" if stamps else None,
        }
        logger.log(TRACE, f"PocketBase day {board_date}: {payload}")
        return decode_assignments(board_date, payload)

    async def available_slots(self, run_id: str, board_date: date) -> list[SlotWindow]:
        try:
            run_record = await asyncio.to_thread(self.pb.collection(RUNS).get_one, run_id)
            records = await self._assignment_records(board_date, run_id)
        except ClientResponseError as e:
            raise GatewayError(f"Failed to load slots for run {run_id}: {e}") from e

        day = decode_assignments(
            board_date,
            {
                "runs": [run_row(run_record, self.config.default_max_capacity)],
                "assignments": [assignment_row(r) for r in records],
            },
        )
        run = day.runs[0]
        return compute_windows(run, day.assignments.get(run.id, []), self.config)

    async def save_all(self, board_date: date, records: Sequence[AssignmentRecord]) -> list[AssignmentRecord]:
        """Replace the day's records as a unit.

        A failed write restores the previous records. A cancelled save (the
        caller's timeout) lets the in-flight replace settle and then undoes it,
        so the stored day is either the old contents or the new ones.
        """
        try:
            existing = await self._assignment_records(board_date)
        except ClientResponseError as e:
            raise GatewayError(f"Failed to read assignments for {board_date}: {e}") from e

        previous = [
            {
                "run": getattr(r, "run", ""),
                "pet": getattr(r, "pet", ""),
                "date": board_date.isoformat(),
                "start_time": getattr(r, "start_time", ""),
                "end_time": getattr(r, "end_time", ""),
                "booking": getattr(r, "booking", "") or "",
                "notes": getattr(r, "notes", "") or "",
            }
            for r in existing
        ]

        replace = asyncio.ensure_future(self._replace(board_date, existing, previous, records))
        try:
            await asyncio.shield(replace)
        except asyncio.CancelledError:
            logger.warning(f"Save for {board_date} was cancelled, rolling back")
            outcome = (await asyncio.gather(replace, return_exceptions=True))[0]
            if not isinstance(outcome, BaseException):
                await self._restore(outcome, previous)
            raise

        logger.info(f"Replaced {len(existing)} assignments with {len(records)} for {board_date}")
        return list(records)

    async def _replace(
        self,
        board_date: date,
        existing: list[Any],
        previous: list[dict[str, Any]],
        records: Sequence[AssignmentRecord],
    ) -> list[str]:
        collection = self.pb.collection(ASSIGNMENTS)
        created: list[str] = []
        deleted = 0
        try:
            for record in existing:
                await asyncio.to_thread(collection.delete, record.id)
                deleted += 1
            for record in records:
                new_record = await asyncio.to_thread(collection.create, _record_data(board_date, record))
                created.append(new_record.id)
        except ClientResponseError as e:
            logger.error(f"Save for {board_date} failed after {deleted} deletes and {len(created)} creates: {e}")
            await self._restore(created, previous[:deleted])
            raise GatewayError(f"Failed to save assignments for {board_date}: {e}") from e
        return created

    async def _restore(self, created_ids: list[str], previous: list[dict[str, Any]]) -> None:
        collection = self.pb.collection(ASSIGNMENTS)
        for record_id in created_ids:
            try:
                await asyncio.to_thread(collection.delete, record_id)
            except ClientResponseError as e:
                logger.error(f"Could not roll back created assignment {record_id}: {e}")
        for data in previous:
            try:
                await asyncio.to_thread(collection.create, data)
            except ClientResponseError as e:
                logger.error(f"Could not restore assignment of pet {data['pet']}: {e}")

    async def assign_pets(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str],
        start_time: str | None = None,
        end_time: str | None = None,
        booking_ids: Sequence[str | None] | None = None,
    ) -> list[AssignmentRecord]:
        start_time = start_time or self.config.default_start_time
        if end_time is None:
            try:
                run_record = await asyncio.to_thread(self.pb.collection(RUNS).get_one, run_id)
            except ClientResponseError as e:
                raise GatewayError(f"Run {run_id} could not be loaded: {e}") from e
            period = int(getattr(run_record, "time_period_minutes", 0) or 0) or self.config.default_step_minutes
            end_time = compute_end_time(start_time, period)

        collection = self.pb.collection(ASSIGNMENTS)
        saved: list[AssignmentRecord] = []
        for index, pet_id in enumerate(pet_ids):
            booking_id = booking_ids[index] if booking_ids and index < len(booking_ids) else None
            record = AssignmentRecord(
                run_id=run_id,
                pet_id=pet_id,
                start_time=start_time,
                end_time=end_time,
                booking_id=booking_id,
            )
            try:
                # A pet holds one run per day
                for stale in await asyncio.to_thread(
                    collection.get_full_list,
                    query_params={"filter": f"date = {_quoted(board_date.isoformat())} && pet = {_quoted(pet_id)}"},
                ):
                    await asyncio.to_thread(collection.delete, stale.id)
                await asyncio.to_thread(collection.create, _record_data(board_date, record))
            except ClientResponseError as e:
                raise GatewayError(f"Failed to assign pet {pet_id} to run {run_id}: {e}") from e
            saved.append(record)
        return saved

    async def remove_assignments(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str] | None = None,
        assignment_ids: Sequence[str] | None = None,
    ) -> int:
        collection = self.pb.collection(ASSIGNMENTS)
        try:
            records = await self._assignment_records(board_date, run_id)
            targets = [
                r
                for r in records
                if (pet_ids and str(getattr(r, "pet", "")) in pet_ids) or (assignment_ids and r.id in assignment_ids)
            ]
            for record in targets:
                await asyncio.to_thread(collection.delete, record.id)
        except ClientResponseError as e:
            raise GatewayError(f"Failed to remove assignments from run {run_id}: {e}") from e
        return len(targets)


class PocketBaseRoster(RosterSource):
    """Checked-in pets from the ``bookings`` collection."""

    def __init__(self, pb: PocketBase):
        self.pb = pb

    async def checked_in_pets(self, board_date: date) -> list[Pet]:
        day = board_date.isoformat()
        filter_str = f'status = "CHECKED_IN" && check_in <= "{day} 23:59:59" && check_out >= "{day} 00:00:00"'
        try:
            bookings = await asyncio.to_thread(
                self.pb.collection(BOOKINGS).get_full_list,
                query_params={"filter": filter_str, "expand": "pet,owner"},
            )
        except ClientResponseError as e:
            raise GatewayError(f"Failed to load checked-in bookings for {board_date}: {e}") from e
        return decode_roster({"data": [booking_row(b) for b in bookings]})
