"""Run board engine: draft store, reconciliation, placement and capacity."""

from .capacity import BoardUtilization, RunOccupancy, board_occupancy, board_utilization, run_occupancy
from .draft_store import DraftStore
from .placement import (
    UNASSIGNED_POOL_ID,
    DropOutcome,
    PendingPlacement,
    PlacementOrchestrator,
    PlacementResult,
    PlacementState,
    SaveResult,
)
from .reconciliation import ReconciliationController, SeedState
from .session import BoardSession, BoardView
from .slots import SlotCalculator, SlotSuggestion, compute_end_time
from .suggestions import RunSuggestion, suggest_runs

__all__ = [
    "UNASSIGNED_POOL_ID",
    "BoardSession",
    "BoardUtilization",
    "BoardView",
    "DraftStore",
    "DropOutcome",
    "PendingPlacement",
    "PlacementOrchestrator",
    "PlacementResult",
    "PlacementState",
    "ReconciliationController",
    "RunOccupancy",
    "RunSuggestion",
    "SaveResult",
    "SeedState",
    "SlotCalculator",
    "SlotSuggestion",
    "board_occupancy",
    "board_utilization",
    "compute_end_time",
    "run_occupancy",
    "suggest_runs",
]
