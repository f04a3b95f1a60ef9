"""
Board Session - one operator's working board for one date.

Wires the draft store, reconciliation controller, slot calculator and
placement orchestrator together behind a single object, so nothing depends
on an ambient "current date".
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import TypeVar

from ..config import BoardConfig
from ..errors import GatewayTimeoutError, PlacementBusyError, UnknownRunError
from ..gateway.base import PersistenceGateway, RosterSource
from ..logging_config import get_logger
from ..models import Assignment, AssignmentRecord, PersistenceStatus, Pet, Run
from .capacity import BoardUtilization, RunOccupancy, board_occupancy, board_utilization, run_occupancy
from .draft_store import DraftStore
from .placement import PlacementOrchestrator, PlacementState, SaveResult
from .reconciliation import ReconciliationController
from .slots import SlotCalculator, SlotSuggestion
from .suggestions import RunSuggestion, suggest_runs

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AssignmentView:
    assignment: Assignment
    status: PersistenceStatus


@dataclass(frozen=True)
class RunView:
    run: Run
    occupancy: RunOccupancy
    assignments: list[AssignmentView] = field(default_factory=list)


@dataclass(frozen=True)
class BoardView:
    """Read-only picture of the board, recomputed on every call."""

    board_date: date
    seeded: bool
    dirty: bool
    stale: bool
    placement_state: PlacementState
    runs: list[RunView]
    unassigned: list[Pet]
    utilization: BoardUtilization
    selected_pet_ids: list[str]
    suggestions: list[RunSuggestion]


class BoardSession:
    def __init__(
        self,
        gateway: PersistenceGateway,
        roster_source: RosterSource,
        board_date: date,
        config: BoardConfig | None = None,
    ):
        self.gateway = gateway
        self.roster_source = roster_source
        self.config = config or BoardConfig()
        self.draft = DraftStore()
        self.controller = ReconciliationController(self.draft, board_date)
        self.calculator = SlotCalculator(gateway, self.config)
        self.roster: list[Pet] = []
        self.orchestrator = PlacementOrchestrator(
            self.controller,
            gateway,
            self.calculator,
            roster=lambda: self.roster,
            config=self.config,
        )

    @property
    def board_date(self) -> date:
        return self.controller.active_date

    async def _with_timeout(self, awaitable: Awaitable[T], what: str) -> T:
        timeout = self.config.gateway_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except TimeoutError as e:
            raise GatewayTimeoutError(f"{what} timed out after {timeout}s") from e

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load(self) -> bool:
        """Fetch server state and the roster; seeds the draft if not yet seeded."""
        board_date = self.board_date
        day, roster = await asyncio.gather(
            self._with_timeout(self.gateway.fetch_for_date(board_date), f"Loading board for {board_date}"),
            self._with_timeout(self.roster_source.checked_in_pets(board_date), f"Loading roster for {board_date}"),
        )
        if board_date != self.board_date:
            logger.info(f"Discarding load for {board_date}; session moved to {self.board_date}")
            return False
        self.roster = roster
        return self.controller.receive(day)

    def _abandon_pending(self) -> None:
        if self.orchestrator.state == PlacementState.COMMITTING:
            raise PlacementBusyError("Cannot reload the board while a placement is being saved")
        self.orchestrator.cancel()

    async def refresh(self) -> bool:
        """Forced refetch: discard the draft and reseed from the server."""
        self._abandon_pending()
        self.controller.force_refetch()
        return await self.load()

    async def change_date(self, new_date: date) -> bool:
        self._abandon_pending()
        self.controller.change_date(new_date)
        return await self.load()

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------
    @property
    def runs(self) -> list[Run]:
        return self.controller.runs

    def run(self, run_id: str) -> Run:
        run = self.controller.run(run_id)
        if run is None:
            raise UnknownRunError(run_id)
        return run

    def unassigned_pool(self) -> list[Pet]:
        assigned = set(self.draft.all_assigned_pet_ids())
        return [pet for pet in self.roster if pet.id not in assigned]

    def occupancy(self) -> list[RunOccupancy]:
        return board_occupancy(self.runs, self.draft, self.config)

    def utilization(self) -> BoardUtilization:
        unassigned = self.unassigned_pool()
        return board_utilization(
            self.runs,
            self.draft,
            self.config,
            pets_checked_in=len(self.roster),
            unassigned=len(unassigned),
        )

    def dirty(self) -> bool:
        return self.controller.dirty()

    def suggestions(self) -> list[RunSuggestion]:
        return suggest_runs(self.unassigned_pool(), self.runs, self.config.suggestion_max_pets)

    async def slot_suggestion(self, run_id: str) -> SlotSuggestion:
        return await self.calculator.suggest(self.run(run_id), self.board_date)

    def view(self) -> BoardView:
        seeded = self.controller.is_seeded
        pending = set(self.controller.pending_pet_ids())
        runs = [
            RunView(
                run=run,
                occupancy=run_occupancy(run, self.draft, self.config),
                assignments=[
                    AssignmentView(assignment=a, status=self.controller.persistence_status(a.pet.id, pending))
                    for a in self.draft.assignments_for(run.id)
                ],
            )
            for run in self.runs
        ]
        return BoardView(
            board_date=self.board_date,
            seeded=seeded,
            dirty=self.controller.dirty() if seeded else False,
            stale=self.controller.stale,
            placement_state=self.orchestrator.state,
            runs=runs,
            unassigned=self.unassigned_pool(),
            utilization=self.utilization(),
            selected_pet_ids=sorted(self.controller.selected_pet_ids),
            suggestions=self.suggestions(),
        )

    # ------------------------------------------------------------------
    # Bulk actions
    # ------------------------------------------------------------------
    async def save_all(self) -> SaveResult:
        return await self.orchestrator.save_all()

    def discard_changes(self) -> None:
        self._abandon_pending()
        self.controller.reset_to_snapshot()

    def toggle_selection(self, pet_id: str) -> None:
        self.controller.toggle_selection(pet_id)

    def select_all_unassigned(self) -> None:
        self.controller.select_all(pet.id for pet in self.unassigned_pool())

    def clear_selection(self) -> None:
        self.controller.clear_selection()

    # ------------------------------------------------------------------
    # Picker dialog (incremental, bypasses the draft)
    # ------------------------------------------------------------------
    async def assign_pets(
        self,
        run_id: str,
        pet_ids: Sequence[str],
        start_time: str | None = None,
        end_time: str | None = None,
        booking_ids: Sequence[str | None] | None = None,
    ) -> list[AssignmentRecord]:
        """Assign pets straight on the server; the local board is flagged stale."""
        if start_time and end_time:
            self.orchestrator.validate_window(start_time, end_time)
        records = await self._with_timeout(
            self.gateway.assign_pets(run_id, self.board_date, pet_ids, start_time, end_time, booking_ids),
            f"Assigning pets to run {run_id}",
        )
        self._mark_stale(f"{len(records)} pet(s) assigned to run {run_id} outside the board")
        return records

    async def remove_assignments(
        self,
        run_id: str,
        pet_ids: Sequence[str] | None = None,
        assignment_ids: Sequence[str] | None = None,
    ) -> int:
        removed = await self._with_timeout(
            self.gateway.remove_assignments(run_id, self.board_date, pet_ids, assignment_ids),
            f"Removing assignments from run {run_id}",
        )
        self._mark_stale(f"{removed} assignment(s) removed from run {run_id} outside the board")
        return removed

    def _mark_stale(self, reason: str) -> None:
        if self.controller.is_seeded:
            self.controller.stale = True
            logger.info(f"Board for {self.board_date} is stale: {reason}")
