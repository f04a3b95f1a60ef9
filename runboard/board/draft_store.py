"""
Assignment Draft Store - the in-memory working copy of one day's board.

Maps run id -> ordered list of assignments. Order is significant (roster and
run sheet order) and only changes through ``reorder``. Every mutating
operation keeps the pet-uniqueness invariant: a pet id appears in at most one
run's list.

All operations are total over the in-memory structure; persistence is the
caller's responsibility.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from ..errors import CrossRunReorderError
from ..logging_config import get_logger
from ..models import Assignment, AssignmentRecord, Pet

logger = get_logger(__name__)

DraftContents = dict[str, list[Assignment]]


class DraftStore:
    """Mutable run -> assignments mapping for a single day."""

    def __init__(self, contents: Mapping[str, Iterable[Assignment]] | None = None):
        self._runs: DraftContents = {}
        if contents:
            self.replace(contents)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def place(
        self,
        pet: Pet,
        run_id: str,
        start_time: str,
        end_time: str,
        booking_id: str | None = None,
        notes: str | None = None,
    ) -> Assignment:
        """Move ``pet`` to the end of ``run_id``'s list, removing it everywhere else."""
        assignment = Assignment(
            pet=pet,
            start_time=start_time,
            end_time=end_time,
            booking_id=booking_id,
            notes=notes,
        )
        self.unassign_everywhere(pet.id)
        self._runs.setdefault(run_id, []).append(assignment)
        logger.debug(f"Placed pet {pet.id} in run {run_id} ({start_time}-{end_time})")
        return assignment

    def remove(self, pet_id: str, run_id: str) -> bool:
        """Filter the pet out of one run. Returns whether anything was removed."""
        assignments = self._runs.get(run_id)
        if not assignments:
            return False
        kept = [a for a in assignments if a.pet.id != pet_id]
        removed = len(kept) != len(assignments)
        self._runs[run_id] = kept
        return removed

    def unassign_everywhere(self, pet_id: str) -> bool:
        """Remove the pet from every run (return it to the unassigned pool)."""
        removed = False
        for run_id in list(self._runs):
            removed = self.remove(pet_id, run_id) or removed
        return removed

    def reorder(self, run_id: str, from_index: int, to_index: int) -> bool:
        """Move one element within a run's list; no-op for equal or out-of-range indices."""
        assignments = self._runs.get(run_id)
        if not assignments or from_index == to_index:
            return False
        size = len(assignments)
        if not (0 <= from_index < size and 0 <= to_index < size):
            return False
        moved = assignments.pop(from_index)
        assignments.insert(to_index, moved)
        return True

    def reorder_across_runs(self, *args: object, **kwargs: object) -> None:
        """Not supported: moving between runs needs a confirmed window, so use ``place``."""
        raise CrossRunReorderError("Moving a pet between runs must go through place() with a confirmed window")

    def replace(self, contents: Mapping[str, Iterable[Assignment]]) -> None:
        """Replace the whole store with a deep copy of ``contents``.

        If a pet shows up in more than one run the first occurrence wins.
        """
        seen: set[str] = set()
        runs: DraftContents = {}
        for run_id, assignments in contents.items():
            kept: list[Assignment] = []
            for assignment in assignments:
                if assignment.pet.id in seen:
                    logger.warning(f"Dropping duplicate assignment of pet {assignment.pet.id} in run {run_id}")
                    continue
                seen.add(assignment.pet.id)
                kept.append(assignment.model_copy(deep=True))
            runs[run_id] = kept
        self._runs = runs

    def clear(self) -> None:
        self._runs = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def assignments_for(self, run_id: str) -> list[Assignment]:
        return list(self._runs.get(run_id, []))

    def run_ids(self) -> list[str]:
        return list(self._runs)

    def iter_assignments(self) -> Iterator[tuple[str, Assignment]]:
        for run_id, assignments in self._runs.items():
            for assignment in assignments:
                yield run_id, assignment

    def all_assigned_pet_ids(self) -> list[str]:
        """De-duplicated pet ids across all runs, in board order."""
        return list(dict.fromkeys(a.pet.id for _, a in self.iter_assignments()))

    def locate(self, pet_id: str) -> tuple[str, int] | None:
        """(run_id, index) of the pet's assignment, if placed."""
        for run_id, assignments in self._runs.items():
            for index, assignment in enumerate(assignments):
                if assignment.pet.id == pet_id:
                    return run_id, index
        return None

    def find_assignment(self, pet_id: str) -> Assignment | None:
        location = self.locate(pet_id)
        if location is None:
            return None
        run_id, index = location
        return self._runs[run_id][index]

    def find_pet(self, pet_id: str) -> Pet | None:
        assignment = self.find_assignment(pet_id)
        return assignment.pet if assignment else None

    def total_assigned(self) -> int:
        return sum(len(assignments) for assignments in self._runs.values())

    def snapshot(self) -> DraftContents:
        """Deep copy of the current contents."""
        return {run_id: [a.model_copy(deep=True) for a in assignments] for run_id, assignments in self._runs.items()}

    def matches(self, snapshot: Mapping[str, list[Assignment]]) -> bool:
        """Order-sensitive structural equality against a snapshot.

        Runs with an empty list are treated the same as runs that are absent.
        """
        mine = {run_id: assignments for run_id, assignments in self._runs.items() if assignments}
        theirs = {run_id: list(assignments) for run_id, assignments in snapshot.items() if assignments}
        return mine == theirs

    def to_records(self) -> list[AssignmentRecord]:
        """Flatten to the wire list used by the replace-all save."""
        return [assignment.to_record(run_id) for run_id, assignment in self.iter_assignments()]
