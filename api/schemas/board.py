"""
Pydantic schemas for run board endpoints.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from runboard.board import BoardView, PendingPlacement, SlotSuggestion
from runboard.board.capacity import BoardUtilization
from runboard.board.session import AssignmentView, RunView
from runboard.models import Pet, SlotWindow

# ========================================
# Requests
# ========================================


class BeginPlacementRequest(BaseModel):
    """Start moving a pet onto a run; the window is confirmed separately."""

    pet_id: str
    run_id: str


class ConfirmWindowRequest(BaseModel):
    start_time: str = Field(description="HH:MM, 24-hour")
    end_time: str = Field(description="HH:MM, 24-hour")
    notes: str | None = None


class DropRequest(BaseModel):
    """Drag-end event: ``over_id`` is a run id, a pet id, or ``unassigned``."""

    pet_id: str
    over_id: str | None = None


class ReorderRequest(BaseModel):
    run_id: str
    from_index: int = Field(ge=0)
    to_index: int = Field(ge=0)


class UnassignRequest(BaseModel):
    pet_id: str


class SelectionRequest(BaseModel):
    action: Literal["toggle", "select_all", "clear"]
    pet_id: str | None = None


class PickerAssignRequest(BaseModel):
    """Assign pets to a run directly on the backend (picker dialog)."""

    board_date: date
    pet_ids: list[str] = Field(min_length=1)
    start_time: str | None = None
    end_time: str | None = None
    booking_ids: list[str | None] | None = None


class PickerRemoveRequest(BaseModel):
    board_date: date
    pet_ids: list[str] | None = None
    assignment_ids: list[str] | None = None


# ========================================
# Responses
# ========================================


class PetResponse(BaseModel):
    id: str
    name: str
    species: str | None = None
    breed: str | None = None
    photo_url: str | None = None
    owner_name: str | None = None
    behavior_flags: list[str] = Field(default_factory=list)
    has_warnings: bool = False

    @classmethod
    def from_pet(cls, pet: Pet) -> PetResponse:
        owner = pet.primary_owner
        return cls(
            id=pet.id,
            name=pet.name,
            species=pet.species,
            breed=pet.breed,
            photo_url=pet.photo_url,
            owner_name=owner.full_name if owner else None,
            behavior_flags=pet.behavior_flags,
            has_warnings=pet.has_warnings,
        )


class AssignmentResponse(BaseModel):
    id: str | None = None
    pet: PetResponse
    start_time: str
    end_time: str
    booking_id: str | None = None
    notes: str | None = None
    persistence: str
    persistence_error: str | None = None

    @classmethod
    def from_view(cls, item: AssignmentView) -> AssignmentResponse:
        a = item.assignment
        return cls(
            id=a.id,
            pet=PetResponse.from_pet(a.pet),
            start_time=a.start_time,
            end_time=a.end_time,
            booking_id=a.booking_id,
            notes=a.notes,
            persistence=item.status.state.value,
            persistence_error=item.status.reason,
        )


class RunResponse(BaseModel):
    id: str
    name: str
    code: str | None = None
    size: str | None = None
    sort_order: int
    max_capacity: int
    time_period_minutes: int | None = None
    capacity_type: str
    occupancy: int
    utilization_percent: int
    display_percent: int
    spots_left: int
    capacity_status: str
    assignments: list[AssignmentResponse]

    @classmethod
    def from_view(cls, item: RunView) -> RunResponse:
        run, occ = item.run, item.occupancy
        return cls(
            id=run.id,
            name=run.name,
            code=run.code,
            size=run.size,
            sort_order=run.sort_order,
            max_capacity=run.max_capacity,
            time_period_minutes=run.time_period_minutes,
            capacity_type=run.capacity_type.value,
            occupancy=occ.occupancy,
            utilization_percent=occ.utilization_percent,
            display_percent=occ.display_percent,
            spots_left=occ.spots_left,
            capacity_status=occ.status.value,
            assignments=[AssignmentResponse.from_view(a) for a in item.assignments],
        )


class UtilizationResponse(BaseModel):
    total_assigned: int
    total_capacity: int
    utilization_percent: int
    display_percent: int
    capacity_status: str
    pets_checked_in: int
    unassigned: int

    @classmethod
    def from_utilization(cls, u: BoardUtilization) -> UtilizationResponse:
        return cls(
            total_assigned=u.total_assigned,
            total_capacity=u.total_capacity,
            utilization_percent=u.utilization_percent,
            display_percent=u.display_percent,
            capacity_status=u.status.value,
            pets_checked_in=u.pets_checked_in,
            unassigned=u.unassigned,
        )


class RunSuggestionResponse(BaseModel):
    pet_id: str
    pet_name: str
    run_id: str
    run_name: str
    reason: str


class BoardResponse(BaseModel):
    """Full board for one date."""

    board_date: date
    seeded: bool
    dirty: bool
    stale: bool
    placement_state: str
    runs: list[RunResponse]
    unassigned: list[PetResponse]
    utilization: UtilizationResponse
    selected_pet_ids: list[str]
    suggestions: list[RunSuggestionResponse]

    @classmethod
    def from_view(cls, view: BoardView) -> BoardResponse:
        return cls(
            board_date=view.board_date,
            seeded=view.seeded,
            dirty=view.dirty,
            stale=view.stale,
            placement_state=view.placement_state.value,
            runs=[RunResponse.from_view(r) for r in view.runs],
            unassigned=[PetResponse.from_pet(p) for p in view.unassigned],
            utilization=UtilizationResponse.from_utilization(view.utilization),
            selected_pet_ids=view.selected_pet_ids,
            suggestions=[
                RunSuggestionResponse(
                    pet_id=s.pet.id, pet_name=s.pet.name, run_id=s.run.id, run_name=s.run.name, reason=s.reason
                )
                for s in view.suggestions
            ],
        )


class WindowResponse(BaseModel):
    start_time: str
    end_time: str
    available: bool

    @classmethod
    def from_window(cls, w: SlotWindow) -> WindowResponse:
        return cls(start_time=w.start_time, end_time=w.end_time, available=w.available)


class SlotSuggestionResponse(BaseModel):
    run_id: str
    start_time: str
    end_time: str
    period_minutes: int | None = None
    windows: list[WindowResponse]
    candidates: list[str]

    @classmethod
    def from_suggestion(cls, s: SlotSuggestion) -> SlotSuggestionResponse:
        return cls(
            run_id=s.run_id,
            start_time=s.start_time,
            end_time=s.end_time,
            period_minutes=s.period_minutes,
            windows=[WindowResponse.from_window(w) for w in s.ranked_windows],
            candidates=list(s.candidates),
        )


class PendingPlacementResponse(BaseModel):
    pet: PetResponse
    run_id: str
    source_run_id: str | None = None
    suggestion: SlotSuggestionResponse

    @classmethod
    def from_pending(cls, pending: PendingPlacement) -> PendingPlacementResponse:
        return cls(
            pet=PetResponse.from_pet(pending.pet),
            run_id=pending.run.id,
            source_run_id=pending.source_run_id,
            suggestion=SlotSuggestionResponse.from_suggestion(pending.suggestion),
        )


class BeginPlacementResponse(BaseModel):
    """``pending`` is null when the pet is unknown and nothing started."""

    pending: PendingPlacementResponse | None = None


class PlacementResponse(BaseModel):
    saved: bool
    run_id: str
    pet_id: str
    start_time: str
    end_time: str
    persistence: str
    capacity_flagged: bool = False
    error: str | None = None
    board: BoardResponse


class DropResponse(BaseModel):
    outcome: str
    pending: PendingPlacementResponse | None = None
    board: BoardResponse


class SaveResponse(BaseModel):
    saved: bool
    count: int
    error: str | None = None
    board: BoardResponse


class ChangedResponse(BaseModel):
    """Result of an edit that does not need window confirmation."""

    changed: bool
    board: BoardResponse


class PickerResponse(BaseModel):
    run_id: str
    board_date: date
    count: int
    board_stale: bool
