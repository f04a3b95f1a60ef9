"""
Board Router - Endpoints for one date's run board.

This router handles:
- Loading and refreshing the board for a date
- Window-confirmed placements and drag-end dispatch
- Reorders, returns to the pool and removals (saved on the next bulk save)
- Bulk save, discard and pet selection
- Slot suggestions for a run
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from runboard.errors import (
    BoardValidationError,
    GatewayError,
    NoPendingPlacementError,
    NotSeededError,
    PlacementBusyError,
    RunboardError,
    UnknownRunError,
)

from ..dependencies import get_registry
from ..schemas.board import (
    BeginPlacementRequest,
    BeginPlacementResponse,
    BoardResponse,
    ChangedResponse,
    ConfirmWindowRequest,
    DropRequest,
    DropResponse,
    PendingPlacementResponse,
    PlacementResponse,
    ReorderRequest,
    SaveResponse,
    SelectionRequest,
    SlotSuggestionResponse,
    UnassignRequest,
)
from ..services.board_sessions import BoardSessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/board", tags=["board"])

Registry = Annotated[BoardSessionRegistry, Depends(get_registry)]


def http_error(e: RunboardError) -> HTTPException:
    """Map a board error to the HTTP status the console expects."""
    if isinstance(e, UnknownRunError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, BoardValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, PlacementBusyError | NoPendingPlacementError | NotSeededError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, GatewayError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed {action}: {str(e)}")


# ========================================
# Loading
# ========================================


@router.get("/{board_date}")
async def get_board(board_date: date, registry: Registry) -> BoardResponse:
    """Board for a date, seeded from the backend on first access."""
    try:
        session = await registry.get(board_date)
        return BoardResponse.from_view(session.view())
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("loading board", e) from e


@router.post("/{board_date}/refresh")
async def refresh_board(board_date: date, registry: Registry) -> BoardResponse:
    """Discard the local draft and reseed from the backend."""
    try:
        session = await registry.get(board_date)
        await session.refresh()
        return BoardResponse.from_view(session.view())
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("refreshing board", e) from e


# ========================================
# Placements
# ========================================


@router.post("/{board_date}/placements")
async def begin_placement(
    board_date: date, request: BeginPlacementRequest, registry: Registry
) -> BeginPlacementResponse:
    """Start placing a pet; returns the suggested window to confirm."""
    try:
        session = await registry.get(board_date)
        pending = await session.orchestrator.begin_placement(request.pet_id, request.run_id)
        if pending is None:
            return BeginPlacementResponse(pending=None)
        return BeginPlacementResponse(pending=PendingPlacementResponse.from_pending(pending))
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("starting placement", e) from e


@router.post("/{board_date}/placements/confirm")
async def confirm_placement(
    board_date: date, request: ConfirmWindowRequest, registry: Registry
) -> PlacementResponse:
    """Commit the pending placement and save the day.

    A failed save still returns 200: the placement is kept locally and
    reported with ``saved: false``.
    """
    try:
        session = await registry.get(board_date)
        result = await session.orchestrator.confirm_window(request.start_time, request.end_time, request.notes)
        return PlacementResponse(
            saved=result.saved,
            run_id=result.run_id,
            pet_id=result.assignment.pet.id,
            start_time=result.assignment.start_time,
            end_time=result.assignment.end_time,
            persistence=result.status.state.value,
            capacity_flagged=result.capacity_flagged,
            error=result.error,
            board=BoardResponse.from_view(session.view()),
        )
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("confirming placement", e) from e


@router.post("/{board_date}/placements/cancel")
async def cancel_placement(board_date: date, registry: Registry) -> ChangedResponse:
    try:
        session = await registry.get(board_date)
        cancelled = session.orchestrator.cancel()
        return ChangedResponse(changed=cancelled, board=BoardResponse.from_view(session.view()))
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("cancelling placement", e) from e


@router.post("/{board_date}/drop")
async def drop_pet(board_date: date, request: DropRequest, registry: Registry) -> DropResponse:
    """Drag-end: onto the pool, onto a run, or onto another pet in the same run."""
    try:
        session = await registry.get(board_date)
        outcome = await session.orchestrator.handle_drop(request.pet_id, request.over_id)
        pending = session.orchestrator.pending
        return DropResponse(
            outcome=outcome.value,
            pending=PendingPlacementResponse.from_pending(pending) if pending else None,
            board=BoardResponse.from_view(session.view()),
        )
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("handling drop", e) from e


# ========================================
# Unconfirmed edits
# ========================================


@router.post("/{board_date}/reorder")
async def reorder_run(board_date: date, request: ReorderRequest, registry: Registry) -> ChangedResponse:
    try:
        session = await registry.get(board_date)
        changed = session.orchestrator.reorder(request.run_id, request.from_index, request.to_index)
        return ChangedResponse(changed=changed, board=BoardResponse.from_view(session.view()))
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("reordering run", e) from e


@router.post("/{board_date}/unassign")
async def return_to_pool(board_date: date, request: UnassignRequest, registry: Registry) -> ChangedResponse:
    """Move a pet back to the unassigned pool."""
    try:
        session = await registry.get(board_date)
        changed = session.orchestrator.return_to_pool(request.pet_id)
        return ChangedResponse(changed=changed, board=BoardResponse.from_view(session.view()))
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("unassigning pet", e) from e


@router.delete("/{board_date}/runs/{run_id}/pets/{pet_id}")
async def remove_pet(board_date: date, run_id: str, pet_id: str, registry: Registry) -> ChangedResponse:
    try:
        session = await registry.get(board_date)
        changed = session.orchestrator.remove(pet_id, run_id)
        return ChangedResponse(changed=changed, board=BoardResponse.from_view(session.view()))
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("removing pet", e) from e


# ========================================
# Bulk actions
# ========================================


@router.post("/{board_date}/save")
async def save_board(board_date: date, registry: Registry) -> SaveResponse:
    """Re-send the whole board for the date (replace-all)."""
    try:
        session = await registry.get(board_date)
        result = await session.save_all()
        return SaveResponse(
            saved=result.saved,
            count=result.count,
            error=result.error,
            board=BoardResponse.from_view(session.view()),
        )
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("saving board", e) from e


@router.post("/{board_date}/reset")
async def discard_changes(board_date: date, registry: Registry) -> BoardResponse:
    """Restore the last-saved board."""
    try:
        session = await registry.get(board_date)
        session.discard_changes()
        return BoardResponse.from_view(session.view())
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("discarding changes", e) from e


@router.post("/{board_date}/selection")
async def update_selection(board_date: date, request: SelectionRequest, registry: Registry) -> BoardResponse:
    if request.action == "toggle" and not request.pet_id:
        raise HTTPException(status_code=422, detail="pet_id is required to toggle selection")
    try:
        session = await registry.get(board_date)
        if request.action == "toggle":
            session.toggle_selection(request.pet_id or "")
        elif request.action == "select_all":
            session.select_all_unassigned()
        else:
            session.clear_selection()
        return BoardResponse.from_view(session.view())
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("updating selection", e) from e


# ========================================
# Slots
# ========================================


@router.get("/{board_date}/runs/{run_id}/slots")
async def get_slots(board_date: date, run_id: str, registry: Registry) -> SlotSuggestionResponse:
    """Suggested window and candidate start times for a run."""
    try:
        session = await registry.get(board_date)
        suggestion = await session.slot_suggestion(run_id)
        return SlotSuggestionResponse.from_suggestion(suggestion)
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        raise _unexpected("computing slots", e) from e
