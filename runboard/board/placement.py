"""
Placement Orchestrator - drives one pet's move onto a run.

    IDLE --begin_placement--> PENDING_WINDOW_CONFIRMATION
    PENDING_WINDOW_CONFIRMATION --confirm_window--> COMMITTING --> IDLE
    PENDING_WINDOW_CONFIRMATION --cancel--> CANCELLED --> IDLE

Only one placement may be in flight per session: ``begin_placement`` is
rejected while another flow is pending or committing. Once committing has
started the save runs to completion. A failed or timed-out save keeps the
optimistic placement in the draft and marks the affected pets failed.

Reorders and returns to the pool skip window confirmation and are persisted
by the next bulk save.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from ..config import BoardConfig
from ..errors import (
    GatewayError,
    InvalidWindowError,
    NoPendingPlacementError,
    PlacementBusyError,
    UnknownRunError,
)
from ..gateway.base import PersistenceGateway
from ..logging_config import get_logger
from ..models import Assignment, PersistenceStatus, Pet, Run
from .reconciliation import ReconciliationController
from .slots import SlotCalculator, SlotSuggestion, parse_time

logger = get_logger(__name__)

# Drop target id of the unassigned pool
UNASSIGNED_POOL_ID = "unassigned"


class PlacementState(Enum):
    IDLE = "idle"
    PENDING_WINDOW_CONFIRMATION = "pending_window_confirmation"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


class DropOutcome(Enum):
    RETURNED_TO_POOL = "returned_to_pool"
    PENDING_CONFIRMATION = "pending_confirmation"
    REORDERED = "reordered"
    IGNORED = "ignored"


@dataclass(frozen=True)
class PendingPlacement:
    pet: Pet
    run: Run
    source_run_id: str | None
    suggestion: SlotSuggestion


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of a confirmed placement. ``saved`` is False when persistence failed."""

    assignment: Assignment
    run_id: str
    saved: bool
    status: PersistenceStatus
    capacity_flagged: bool = False
    error: str | None = None


@dataclass(frozen=True)
class SaveResult:
    saved: bool
    count: int
    error: str | None = None


class PlacementOrchestrator:
    """State machine for placements on one session's draft."""

    def __init__(
        self,
        controller: ReconciliationController,
        gateway: PersistenceGateway,
        calculator: SlotCalculator,
        roster: Callable[[], Iterable[Pet]],
        config: BoardConfig | None = None,
    ):
        self.controller = controller
        self.draft = controller.draft
        self.gateway = gateway
        self.calculator = calculator
        self.roster = roster
        self.config = config or BoardConfig()
        self._state = PlacementState.IDLE
        self._pending: PendingPlacement | None = None
        # Bumped by every begin and cancel; a begin resuming under a newer value was cancelled
        self._flow = 0

    @property
    def state(self) -> PlacementState:
        return self._state

    @property
    def pending(self) -> PendingPlacement | None:
        return self._pending

    def _find_pet(self, pet_id: str) -> Pet | None:
        for pet in self.roster():
            if pet.id == pet_id:
                return pet
        return self.draft.find_pet(pet_id)

    def _ensure_not_committing(self) -> None:
        if self._state == PlacementState.COMMITTING:
            raise PlacementBusyError("A placement is being saved")

    # ------------------------------------------------------------------
    # Window-confirmed placement
    # ------------------------------------------------------------------
    async def begin_placement(self, pet_id: str, target_run_id: str) -> PendingPlacement | None:
        """Start placing a pet. Returns None (and stays idle) if the pet is unknown."""
        if self._state != PlacementState.IDLE:
            raise PlacementBusyError(f"Placement already {self._state.value}")

        run = self.controller.run(target_run_id)
        if run is None:
            raise UnknownRunError(target_run_id)

        pet = self._find_pet(pet_id)
        if pet is None:
            logger.info(f"Pet {pet_id} is neither checked in nor on the board; ignoring placement")
            return None

        location = self.draft.locate(pet_id)
        self._flow += 1
        flow = self._flow
        self._state = PlacementState.PENDING_WINDOW_CONFIRMATION
        try:
            suggestion = await self.calculator.suggest(run, self.controller.active_date)
        except Exception:
            if flow == self._flow:
                self._state = PlacementState.IDLE
            raise

        if flow != self._flow:
            logger.debug(f"Placement of pet {pet_id} was cancelled while loading slots")
            return None

        self._pending = PendingPlacement(
            pet=pet,
            run=run,
            source_run_id=location[0] if location else None,
            suggestion=suggestion,
        )
        logger.debug(f"Pending placement of pet {pet_id} into run {target_run_id}")
        return self._pending

    @staticmethod
    def validate_window(start_time: str, end_time: str) -> None:
        parse_time(start_time)
        parse_time(end_time)
        if not start_time < end_time:
            raise InvalidWindowError(f"Start time {start_time} must be before end time {end_time}")

    async def confirm_window(self, start_time: str, end_time: str, notes: str | None = None) -> PlacementResult:
        """Commit the pending placement with the chosen window and save the day."""
        if self._state != PlacementState.PENDING_WINDOW_CONFIRMATION or self._pending is None:
            raise NoPendingPlacementError("No placement is awaiting window confirmation")

        self.validate_window(start_time, end_time)

        pending = self._pending
        pet = pending.pet
        previous = self.draft.find_assignment(pet.id)
        booking_id = previous.booking_id if previous and previous.booking_id else None
        if booking_id is None and pet.booking_info is not None:
            booking_id = pet.booking_info.booking_id

        self._state = PlacementState.COMMITTING
        try:
            assignment = self.draft.place(
                pet,
                pending.run.id,
                start_time,
                end_time,
                booking_id=booking_id,
                notes=notes if notes is not None else (previous.notes if previous else None),
            )
            error = await self._persist()
        finally:
            self._pending = None
            self._state = PlacementState.IDLE

        return PlacementResult(
            assignment=assignment,
            run_id=pending.run.id,
            saved=error is None,
            status=self.controller.persistence_status(pet.id),
            capacity_flagged=pending.suggestion.is_flagged(start_time, end_time),
            error=error,
        )

    def cancel(self) -> bool:
        """Drop the pending placement. Only valid before committing."""
        if self._state != PlacementState.PENDING_WINDOW_CONFIRMATION:
            return False
        pet_id = self._pending.pet.id if self._pending else None
        self._state = PlacementState.CANCELLED
        self._pending = None
        self._flow += 1
        logger.debug(f"Cancelled placement of pet {pet_id}")
        self._state = PlacementState.IDLE
        return True

    # ------------------------------------------------------------------
    # Unconfirmed edits (persisted by the next bulk save)
    # ------------------------------------------------------------------
    def reorder(self, run_id: str, from_index: int, to_index: int) -> bool:
        self._ensure_not_committing()
        if self.controller.run(run_id) is None:
            raise UnknownRunError(run_id)
        return self.draft.reorder(run_id, from_index, to_index)

    def return_to_pool(self, pet_id: str) -> bool:
        self._ensure_not_committing()
        return self.draft.unassign_everywhere(pet_id)

    def remove(self, pet_id: str, run_id: str) -> bool:
        self._ensure_not_committing()
        if self.controller.run(run_id) is None:
            raise UnknownRunError(run_id)
        return self.draft.remove(pet_id, run_id)

    async def handle_drop(self, pet_id: str, over_id: str | None) -> DropOutcome:
        """Dispatch a drag-end: pool, run, or another pet in the same run."""
        if not over_id:
            return DropOutcome.IGNORED

        if over_id == UNASSIGNED_POOL_ID:
            return DropOutcome.RETURNED_TO_POOL if self.return_to_pool(pet_id) else DropOutcome.IGNORED

        if self.controller.run(over_id) is not None:
            pending = await self.begin_placement(pet_id, over_id)
            return DropOutcome.PENDING_CONFIRMATION if pending else DropOutcome.IGNORED

        source = self.draft.locate(pet_id)
        target = self.draft.locate(over_id)
        if source and target and source[0] == target[0] and source[1] != target[1]:
            self.reorder(source[0], source[1], target[1])
            return DropOutcome.REORDERED

        return DropOutcome.IGNORED

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    async def save_all(self) -> SaveResult:
        """Re-send the full draft for the active date (manual retry path)."""
        if self._state != PlacementState.IDLE:
            raise PlacementBusyError(f"Cannot save while placement is {self._state.value}")

        count = self.draft.total_assigned()
        self._state = PlacementState.COMMITTING
        try:
            error = await self._persist()
        finally:
            self._state = PlacementState.IDLE
        return SaveResult(saved=error is None, count=count, error=error)

    async def _persist(self) -> str | None:
        """Replace-all save of the current draft. Returns the failure reason, if any."""
        board_date = self.controller.active_date
        sent = self.draft.snapshot()
        records = self.draft.to_records()
        timeout = self.config.gateway_timeout_seconds
        try:
            await asyncio.wait_for(self.gateway.save_all(board_date, records), timeout=timeout)
        except TimeoutError:
            reason = f"Save timed out after {timeout}s"
        except GatewayError as e:
            reason = str(e) or e.__class__.__name__
        else:
            self.controller.mark_saved(sent)
            logger.info(f"Saved {len(records)} assignments for {board_date}")
            return None

        logger.warning(f"Save failed for {board_date}; keeping local changes: {reason}")
        self.controller.mark_failed(reason)
        return reason
