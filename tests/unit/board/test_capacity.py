"""Tests for occupancy, utilization and capacity bands."""

from __future__ import annotations

import pytest

from runboard.board.capacity import (
    board_occupancy,
    board_utilization,
    classify,
    round_percent,
    run_occupancy,
)
from runboard.board.draft_store import DraftStore
from runboard.config import BoardConfig
from runboard.models import CapacityStatus


class TestRoundPercent:
    """Tests for half-up percentage rounding."""

    @pytest.mark.parametrize(
        "numerator,denominator,expected",
        [(1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 10, 50), (0, 4, 0), (3, 0, 0)],
    )
    def test_rounding(self, numerator, denominator, expected):
        assert round_percent(numerator, denominator) == expected


class TestClassify:
    """Tests for warning and critical bands."""

    def test_bands(self):
        assert classify(69, 7, 10) == CapacityStatus.NOMINAL
        assert classify(70, 7, 10) == CapacityStatus.WARNING
        assert classify(90, 9, 10) == CapacityStatus.CRITICAL

    def test_over_capacity_is_critical(self):
        assert classify(50, 11, 10) == CapacityStatus.CRITICAL

    def test_custom_thresholds(self):
        config = BoardConfig(warning_percent=50, critical_percent=75)
        assert classify(50, 5, 10, config) == CapacityStatus.WARNING
        assert classify(75, 3, 4, config) == CapacityStatus.CRITICAL


class TestRunOccupancy:
    """Tests for per-run figures."""

    def test_over_capacity_is_not_clamped(self, make_run, make_assignment):
        run = make_run("run-a", max_capacity=2)
        draft = DraftStore({"run-a": [make_assignment(f"pet-{i}") for i in range(3)]})

        occ = run_occupancy(run, draft)

        assert occ.occupancy == 3
        assert occ.utilization_percent == 150
        assert occ.display_percent == 100
        assert occ.over_capacity is True
        assert occ.spots_left == 0
        assert occ.status == CapacityStatus.CRITICAL

    def test_empty_run(self, make_run):
        occ = run_occupancy(make_run("run-a", max_capacity=4), DraftStore())
        assert (occ.occupancy, occ.utilization_percent, occ.spots_left) == (0, 0, 4)
        assert occ.status == CapacityStatus.NOMINAL

    def test_board_occupancy_follows_run_order(self, make_run):
        runs = [make_run("run-b"), make_run("run-a")]
        assert [o.run_id for o in board_occupancy(runs, DraftStore())] == ["run-b", "run-a"]


class TestBoardUtilization:
    """Tests for aggregate figures."""

    def test_totals(self, make_run, make_assignment):
        runs = [make_run("run-a", max_capacity=4), make_run("run-b", max_capacity=4)]
        draft = DraftStore(
            {
                "run-a": [make_assignment("pet-1"), make_assignment("pet-2")],
                "run-b": [make_assignment("pet-3")],
                "run-orphan": [make_assignment("pet-4")],
            }
        )

        utilization = board_utilization(runs, draft, pets_checked_in=5, unassigned=1)

        assert utilization.total_assigned == 3
        assert utilization.total_capacity == 8
        assert utilization.utilization_percent == 38
        assert utilization.spots_left == 5
        assert utilization.status == CapacityStatus.NOMINAL
        assert (utilization.pets_checked_in, utilization.unassigned) == (5, 1)

    def test_no_runs(self):
        utilization = board_utilization([], DraftStore())
        assert utilization.utilization_percent == 0
        assert utilization.display_percent == 0
