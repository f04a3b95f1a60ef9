"""
Capacity Monitor - occupancy and utilization derived from the draft store.

Pure functions, recomputed on every read. Raw occupancy is never clamped so
an over-capacity run stays visible and is classified critical; only the
display percentage is capped at 100.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ..config import BoardConfig
from ..models import CapacityStatus, Run
from .draft_store import DraftStore


def round_percent(numerator: int, denominator: int) -> int:
    """100 * numerator / denominator, rounded half up; 0 for an empty denominator."""
    if denominator <= 0:
        return 0
    ratio = Decimal(100 * numerator) / Decimal(denominator)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def classify(
    utilization_percent: int,
    occupancy: int,
    max_capacity: int,
    config: BoardConfig | None = None,
) -> CapacityStatus:
    config = config or BoardConfig()
    if occupancy > max_capacity or utilization_percent >= config.critical_percent:
        return CapacityStatus.CRITICAL
    if utilization_percent >= config.warning_percent:
        return CapacityStatus.WARNING
    return CapacityStatus.NOMINAL


@dataclass(frozen=True)
class RunOccupancy:
    run_id: str
    run_name: str
    occupancy: int
    max_capacity: int
    utilization_percent: int
    status: CapacityStatus

    @property
    def display_percent(self) -> int:
        return min(self.utilization_percent, 100)

    @property
    def over_capacity(self) -> bool:
        return self.occupancy > self.max_capacity

    @property
    def spots_left(self) -> int:
        return max(self.max_capacity - self.occupancy, 0)


@dataclass(frozen=True)
class BoardUtilization:
    total_assigned: int
    total_capacity: int
    utilization_percent: int
    status: CapacityStatus
    pets_checked_in: int = 0
    unassigned: int = 0

    @property
    def display_percent(self) -> int:
        return min(self.utilization_percent, 100)

    @property
    def spots_left(self) -> int:
        return max(self.total_capacity - self.total_assigned, 0)


def run_occupancy(run: Run, draft: DraftStore, config: BoardConfig | None = None) -> RunOccupancy:
    occupancy = len(draft.assignments_for(run.id))
    percent = round_percent(occupancy, run.max_capacity)
    return RunOccupancy(
        run_id=run.id,
        run_name=run.name,
        occupancy=occupancy,
        max_capacity=run.max_capacity,
        utilization_percent=percent,
        status=classify(percent, occupancy, run.max_capacity, config),
    )


def board_occupancy(runs: Iterable[Run], draft: DraftStore, config: BoardConfig | None = None) -> list[RunOccupancy]:
    return [run_occupancy(run, draft, config) for run in runs]


def board_utilization(
    runs: Iterable[Run],
    draft: DraftStore,
    config: BoardConfig | None = None,
    pets_checked_in: int = 0,
    unassigned: int = 0,
) -> BoardUtilization:
    """Aggregate figures across all runs for the active day."""
    runs = list(runs)
    total_capacity = sum(run.max_capacity for run in runs)
    total_assigned = sum(len(draft.assignments_for(run.id)) for run in runs)
    percent = round_percent(total_assigned, total_capacity)
    return BoardUtilization(
        total_assigned=total_assigned,
        total_capacity=total_capacity,
        utilization_percent=percent,
        status=classify(percent, total_assigned, total_capacity, config),
        pets_checked_in=pets_checked_in,
        unassigned=unassigned,
    )
