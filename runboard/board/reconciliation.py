"""
Reconciliation Controller - seeds the draft from server state and tracks
what has been persisted.

State machine over ``seeded_date``:

    Unseeded --receive(day for active date)--> Seeded
    Seeded   --change_date() / force_refetch()--> Unseeded

While seeded, further payloads for the same date are ignored so that an
external refetch never clobbers in-progress local edits. The last-saved
snapshot is a deep copy of the draft taken at seed time and after every
successful save; ``dirty()`` is an order-sensitive comparison against it.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import date
from enum import Enum

from ..errors import NotSeededError
from ..logging_config import get_logger
from ..models import Assignment, BoardDay, PersistenceStatus, Run
from .draft_store import DraftContents, DraftStore

logger = get_logger(__name__)


class SeedState(Enum):
    UNSEEDED = "unseeded"
    SEEDED = "seeded"


def _positions(contents: DraftContents) -> dict[str, tuple[str, int, Assignment]]:
    return {
        assignment.pet.id: (run_id, index, assignment)
        for run_id, assignments in contents.items()
        for index, assignment in enumerate(assignments)
    }


class ReconciliationController:
    """Owns the seed/snapshot lifecycle of one draft store."""

    def __init__(self, draft: DraftStore, active_date: date):
        self.draft = draft
        self.active_date = active_date
        self.seeded_date: date | None = None
        self.runs: list[Run] = []
        self.epoch: str | None = None
        self.stale = False
        self.selected_pet_ids: set[str] = set()
        self._snapshot: DraftContents = {}
        self._failures: dict[str, str] = {}

    @property
    def state(self) -> SeedState:
        if self.seeded_date is not None and self.seeded_date == self.active_date:
            return SeedState.SEEDED
        return SeedState.UNSEEDED

    @property
    def is_seeded(self) -> bool:
        return self.state == SeedState.SEEDED

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------
    def receive(self, day: BoardDay) -> bool:
        """Offer a server payload. Returns True if it seeded the draft."""
        if day.board_date != self.active_date:
            logger.debug(f"Ignoring payload for {day.board_date}; active date is {self.active_date}")
            return False

        if self.is_seeded:
            if day.epoch is not None and day.epoch != self.epoch:
                # Server moved on underneath local edits; flag only, never reseed implicitly
                self.stale = True
                logger.warning(
                    f"Board for {day.board_date} changed on the server (epoch {self.epoch} -> {day.epoch}); "
                    "keeping local draft until an explicit refresh"
                )
            return False

        self._seed(day)
        return True

    def _seed(self, day: BoardDay) -> None:
        runs = day.sorted_runs()
        contents: dict[str, list[Assignment]] = {run.id: list(day.assignments.get(run.id, [])) for run in runs}
        for run_id, assignments in day.assignments.items():
            if run_id not in contents:
                logger.warning(f"Assignments reference run {run_id} which is not in the run list")
                contents[run_id] = list(assignments)

        self.draft.replace(contents)
        self._snapshot = self.draft.snapshot()
        self.runs = runs
        self.seeded_date = day.board_date
        self.epoch = day.epoch
        self.stale = False
        self._failures.clear()
        self.selected_pet_ids = set()
        logger.info(
            f"Seeded board for {day.board_date}: {len(runs)} runs, {self.draft.total_assigned()} assignments"
        )

    def change_date(self, new_date: date) -> None:
        """Switch the active date; the board must be reseeded for it."""
        logger.info(f"Active date changed {self.active_date} -> {new_date}")
        self.active_date = new_date
        self._unseed()

    def force_refetch(self) -> None:
        """Discard the draft so the next payload for the active date reseeds it."""
        logger.info(f"Forced refetch for {self.active_date}")
        self._unseed()

    def _unseed(self) -> None:
        self.seeded_date = None
        self.runs = []
        self.epoch = None
        self.stale = False
        self.draft.clear()
        self._snapshot = {}
        self._failures.clear()
        self.selected_pet_ids = set()

    def _require_seeded(self) -> None:
        if not self.is_seeded:
            raise NotSeededError(f"Board for {self.active_date} has not been seeded")

    # ------------------------------------------------------------------
    # Dirty tracking
    # ------------------------------------------------------------------
    def run(self, run_id: str) -> Run | None:
        return next((run for run in self.runs if run.id == run_id), None)

    @property
    def snapshot(self) -> DraftContents:
        return {
            run_id: [a.model_copy(deep=True) for a in assignments] for run_id, assignments in self._snapshot.items()
        }

    def dirty(self) -> bool:
        self._require_seeded()
        return not self.draft.matches(self._snapshot)

    def reset_to_snapshot(self) -> None:
        """Discard local changes, restoring the last-saved contents and order."""
        self._require_seeded()
        self.draft.replace(self._snapshot)
        self._failures.clear()
        self.selected_pet_ids = set()
        logger.info(f"Discarded local changes for {self.active_date}")

    def mark_saved(self, saved: DraftContents | None = None) -> None:
        """Record a successful save of ``saved`` (default: the current draft)."""
        self._require_seeded()
        self._snapshot = self.draft.snapshot() if saved is None else {k: list(v) for k, v in saved.items()}
        self._failures.clear()

    def mark_failed(self, reason: str, pet_ids: Iterable[str] | None = None) -> None:
        """Record a failed save for the given pets (default: every pending pet)."""
        self._require_seeded()
        targets = list(pet_ids) if pet_ids is not None else self.pending_pet_ids()
        for pet_id in targets:
            self._failures[pet_id] = reason

    def pending_pet_ids(self) -> list[str]:
        """Pets whose run, position or window differs from the last-saved snapshot."""
        current = _positions(self.draft.snapshot())
        saved = _positions(self._snapshot)
        changed = [pet_id for pet_id, position in current.items() if saved.get(pet_id) != position]
        changed.extend(pet_id for pet_id in saved if pet_id not in current)
        return changed

    def persistence_status(self, pet_id: str, pending: Collection[str] | None = None) -> PersistenceStatus:
        """Status of one pet. Pass ``pending`` to reuse one ``pending_pet_ids()`` across many pets."""
        if pending is None:
            pending = self.pending_pet_ids()
        if pet_id not in pending:
            return PersistenceStatus.saved()
        if pet_id in self._failures:
            return PersistenceStatus.failed(self._failures[pet_id])
        return PersistenceStatus.dirty()

    # ------------------------------------------------------------------
    # Pet selection
    # ------------------------------------------------------------------
    def toggle_selection(self, pet_id: str) -> None:
        if pet_id in self.selected_pet_ids:
            self.selected_pet_ids.discard(pet_id)
        else:
            self.selected_pet_ids.add(pet_id)

    def select_all(self, pet_ids: Iterable[str]) -> None:
        """Select every given pet, or clear the selection if all are already selected."""
        pet_ids = list(pet_ids)
        if pet_ids and all(pet_id in self.selected_pet_ids for pet_id in pet_ids):
            self.selected_pet_ids = set()
        else:
            self.selected_pet_ids = set(pet_ids)

    def clear_selection(self) -> None:
        self.selected_pet_ids = set()
