"""
Root test configuration and fixtures for the run board project.

This conftest.py provides common fixtures for all unit tests:
- Factories for pets, runs, assignments and board days
- An in-memory persistence gateway and roster
- Isolation of the PocketBase client and the config singleton

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Sequence
from datetime import date
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from runboard.config import ConfigLoader  # noqa: E402
from runboard.gateway.base import PersistenceGateway, RosterSource  # noqa: E402
from runboard.models import (  # noqa: E402
    Assignment,
    AssignmentRecord,
    BoardDay,
    BookingInfo,
    CapacityType,
    Pet,
    Run,
    SlotWindow,
)

BOARD_DATE = date(2026, 1, 6)


def create_mock_pocketbase():
    """Create a mock PocketBase instance."""
    mock_pb = Mock()

    mock_collection = Mock()
    mock_collection.auth_with_password = Mock(return_value=True)
    mock_collection.get_full_list = Mock(return_value=[])
    mock_collection.get_one = Mock()
    mock_collection.get_first_list_item = Mock(side_effect=Exception("not found"))
    mock_collection.create = Mock(return_value=Mock(id="mock-id"))
    mock_collection.update = Mock()
    mock_collection.delete = Mock()

    mock_pb.collection = Mock(return_value=mock_collection)
    return mock_pb


@pytest.fixture
def mock_pocketbase():
    """Create a mock PocketBase instance for tests that need it."""
    return create_mock_pocketbase()


@pytest.fixture(autouse=True)
def mock_all_external_services():
    """Automatically mock PocketBase so no test opens a real connection."""
    if os.environ.get("SKIP_MOCKING") == "true":
        yield {}
        return

    mock_pb = create_mock_pocketbase()
    with patch("pocketbase.PocketBase") as mock_pb_class:
        mock_pb_class.return_value = mock_pb
        yield {"pocketbase": mock_pb}


@pytest.fixture(autouse=True)
def reset_config_loader():
    """Each test starts without a configured ConfigLoader singleton."""
    ConfigLoader.reset()
    yield
    ConfigLoader.reset()


# ============================================================================
# Domain factories
# ============================================================================


def _make_pet(pet_id: str = "pet-1", name: str | None = None, breed: str | None = None, **kwargs) -> Pet:
    return Pet(id=pet_id, name=name or pet_id.replace("-", " ").title(), breed=breed, **kwargs)


def _make_run(
    run_id: str = "run-a",
    name: str | None = None,
    sort_order: int = 0,
    max_capacity: int = 10,
    time_period_minutes: int | None = None,
    capacity_type: CapacityType = CapacityType.TOTAL,
    **kwargs,
) -> Run:
    return Run(
        id=run_id,
        name=name or run_id,
        sort_order=sort_order,
        max_capacity=max_capacity,
        time_period_minutes=time_period_minutes,
        capacity_type=capacity_type,
        **kwargs,
    )


def _make_assignment(
    pet: Pet | str,
    start_time: str = "09:00",
    end_time: str = "10:00",
    **kwargs,
) -> Assignment:
    if isinstance(pet, str):
        pet = _make_pet(pet)
    return Assignment(pet=pet, start_time=start_time, end_time=end_time, **kwargs)


def _make_day(
    runs: Sequence[Run],
    assignments: dict[str, list[Assignment]] | None = None,
    board_date: date = BOARD_DATE,
    epoch: str | None = None,
) -> BoardDay:
    return BoardDay(board_date=board_date, runs=list(runs), assignments=assignments or {}, epoch=epoch)


@pytest.fixture
def board_date() -> date:
    return BOARD_DATE


@pytest.fixture
def make_pet():
    return _make_pet


@pytest.fixture
def make_run():
    return _make_run


@pytest.fixture
def make_assignment():
    return _make_assignment


@pytest.fixture
def make_day():
    return _make_day


# ============================================================================
# In-memory backend
# ============================================================================


class FakeGateway(PersistenceGateway):
    """Records every call; behaviour is steered through attributes."""

    def __init__(self, days: dict[date, BoardDay] | None = None):
        self.days = days or {}
        self.slots: dict[str, list[SlotWindow]] = {}
        self.saved: list[tuple[date, list[AssignmentRecord]]] = []
        self.assigned: list[dict] = []
        self.removed: list[dict] = []
        self.fetch_count = 0
        self.save_error: Exception | None = None
        self.save_delay: float = 0.0
        self.slots_error: Exception | None = None

    async def fetch_for_date(self, board_date: date) -> BoardDay:
        self.fetch_count += 1
        day = self.days.get(board_date)
        if day is None:
            return BoardDay(board_date=board_date, runs=[], assignments={})
        return day.model_copy(deep=True)

    async def available_slots(self, run_id: str, board_date: date) -> list[SlotWindow]:
        if self.slots_error is not None:
            raise self.slots_error
        return list(self.slots.get(run_id, []))

    async def save_all(self, board_date: date, records: Sequence[AssignmentRecord]) -> list[AssignmentRecord]:
        if self.save_delay:
            await asyncio.sleep(self.save_delay)
        if self.save_error is not None:
            raise self.save_error
        self.saved.append((board_date, list(records)))
        return list(records)

    async def assign_pets(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str],
        start_time: str | None = None,
        end_time: str | None = None,
        booking_ids: Sequence[str | None] | None = None,
    ) -> list[AssignmentRecord]:
        self.assigned.append(
            {"run_id": run_id, "date": board_date, "pet_ids": list(pet_ids), "start": start_time, "end": end_time}
        )
        return [
            AssignmentRecord(
                run_id=run_id, pet_id=pet_id, start_time=start_time or "09:00", end_time=end_time or "09:30"
            )
            for pet_id in pet_ids
        ]

    async def remove_assignments(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str] | None = None,
        assignment_ids: Sequence[str] | None = None,
    ) -> int:
        self.removed.append({"run_id": run_id, "date": board_date, "pet_ids": pet_ids, "ids": assignment_ids})
        return len(pet_ids or []) + len(assignment_ids or [])


class FakeRoster(RosterSource):
    def __init__(self, pets: Sequence[Pet] = ()):
        self.pets = list(pets)

    async def checked_in_pets(self, board_date: date) -> list[Pet]:
        return list(self.pets)


@pytest.fixture
def seeded_backend():
    """Two runs on BOARD_DATE; Bella and Max in run A, Luna checked in but unassigned."""
    bella = _make_pet("pet-bella", "Bella", breed="Labrador Retriever", booking_info=BookingInfo(booking_id="bk-1"))
    max_ = _make_pet("pet-max", "Max", breed="Beagle")
    luna = _make_pet("pet-luna", "Luna", breed="Toy Poodle", booking_info=BookingInfo(booking_id="bk-3"))
    run_a = _make_run("run-a", "Big Dog Run", sort_order=1, max_capacity=2, time_period_minutes=30)
    run_b = _make_run("run-b", "Small Dog Run", sort_order=2, max_capacity=4)
    day = _make_day(
        [run_b, run_a],
        {
            "run-a": [
                _make_assignment(bella, "09:00", "09:30", booking_id="bk-1", id="asg-1"),
                _make_assignment(max_, "09:30", "10:00", id="asg-2"),
            ],
        },
        epoch="2:2026-01-06 08:00:00",
    )
    gateway = FakeGateway({BOARD_DATE: day})
    roster = FakeRoster([bella, max_, luna])
    return gateway, roster


@pytest.fixture
def empty_backend():
    """A gateway with no stored days and an empty roster."""
    return FakeGateway(), FakeRoster()
