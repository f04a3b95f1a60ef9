"""Tests for domain model validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from runboard.models import (
    DEFAULT_MAX_CAPACITY,
    Assignment,
    BoardDay,
    CapacityType,
    Owner,
    Pet,
    PersistenceState,
    PersistenceStatus,
    Run,
    SlotWindow,
    is_valid_time,
)


class TestTimes:
    """Tests for HH:MM validation."""

    @pytest.mark.parametrize("value", ["00:00", "09:05", "23:59"])
    def test_valid(self, value):
        assert is_valid_time(value)

    @pytest.mark.parametrize("value", ["24:00", "9:05", "09:5", "09:60", None, 930])
    def test_invalid(self, value):
        assert not is_valid_time(value)

    def test_assignment_rejects_bad_time(self, make_pet):
        with pytest.raises(ValidationError):
            Assignment(pet=make_pet(), start_time="9am", end_time="10:00")

    def test_slot_window_accepts_camel_case(self):
        window = SlotWindow.model_validate({"startTime": "09:00", "endTime": "09:30"})
        assert window.available is True


class TestRun:
    """Tests for run defaults."""

    @pytest.mark.parametrize("value", [None, 0])
    def test_unconfigured_capacity_defaults(self, value):
        assert Run(id="r", name="R", max_capacity=value).max_capacity == DEFAULT_MAX_CAPACITY

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValidationError):
            Run(id="r", name="R", max_capacity=-1)

    def test_capacity_type_defaults_to_total(self):
        assert Run(id="r", name="R", capacity_type=None).capacity_type == CapacityType.TOTAL
        assert Run(id="r", name="R", capacity_type="concurrent").capacity_type == CapacityType.CONCURRENT


class TestPet:
    """Tests for behavior flags and warnings."""

    def test_flags_from_mapping(self):
        pet = Pet(id="p", name="P", behavior_flags={"reactive": True, "jumper": False, "noisy": "yes"})
        assert pet.behavior_flags == ["reactive"]
        assert pet.has_warnings

    def test_flags_from_bad_json(self):
        assert Pet(id="p", name="P", behavior_flags="{not json").behavior_flags == []

    def test_notes_are_warnings(self):
        assert Pet(id="p", name="P", dietary_notes="Grain free").has_warnings
        assert not Pet(id="p", name="P").has_warnings

    def test_primary_owner(self):
        pet = Pet(id="p", name="P", owners=[Owner(first_name="Sam"), Owner(first_name="Alex")])
        assert pet.primary_owner.full_name == "Sam"
        assert Owner().full_name == "Unknown Owner"


class TestBoardDay:
    """Tests for run ordering."""

    def test_sorted_runs(self, make_run, board_date):
        day = BoardDay(
            board_date=board_date,
            runs=[make_run("r3", "Charlie", sort_order=2), make_run("r2", "Bravo", 1), make_run("r1", "Alpha", 1)],
        )
        assert [r.id for r in day.sorted_runs()] == ["r1", "r2", "r3"]


class TestPersistenceStatus:
    def test_constructors(self):
        assert PersistenceStatus.saved().state == PersistenceState.SAVED
        failed = PersistenceStatus.failed("timeout")
        assert (failed.state, failed.reason) == (PersistenceState.FAILED, "timeout")
