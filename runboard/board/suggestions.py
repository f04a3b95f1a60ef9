"""Run suggestions for unassigned pets, matched on breed size and run type."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..models import Pet, Run

LARGE_BREED_MARKERS = ("lab", "retriever", "shepherd")
SMALL_BREED_MARKERS = ("chihuahua", "terrier", "poodle")


@dataclass(frozen=True)
class RunSuggestion:
    pet: Pet
    run: Run
    reason: str = "size match"


def _run_kind(run: Run) -> str:
    return " ".join(filter(None, [run.run_type, run.size])).lower()


def matches_run(pet: Pet, run: Run) -> bool:
    breed = (pet.breed or "").lower()
    name = run.name.lower()
    kind = _run_kind(run)

    if any(marker in breed for marker in LARGE_BREED_MARKERS) and ("big" in name or "large" in kind):
        return True
    if any(marker in breed for marker in SMALL_BREED_MARKERS) and ("small" in name or "small" in kind):
        return True
    return False


def suggest_runs(unassigned: Iterable[Pet], runs: list[Run], max_pets: int = 3) -> list[RunSuggestion]:
    """First matching run for each of the first ``max_pets`` unassigned pets."""
    if not runs:
        return []

    suggestions = []
    for pet in list(unassigned)[:max_pets]:
        run = next((r for r in runs if matches_run(pet, r)), None)
        if run is not None:
            suggestions.append(RunSuggestion(pet=pet, run=run))
    return suggestions
