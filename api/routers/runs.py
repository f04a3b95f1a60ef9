"""
Runs Router - Incremental assignment endpoints used by the pet picker.

These write straight to the backend and bypass the board draft. A board
already open for the same date is flagged stale so the operator can refresh.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException

from runboard.board import BoardSession
from runboard.errors import RunboardError

from ..dependencies import get_registry
from ..schemas.board import PickerAssignRequest, PickerRemoveRequest, PickerResponse
from ..services.board_sessions import BoardSessionRegistry
from .board import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/runs", tags=["runs"])

Registry = Annotated[BoardSessionRegistry, Depends(get_registry)]


def _session(registry: BoardSessionRegistry, request: PickerAssignRequest | PickerRemoveRequest) -> BoardSession:
    existing = registry.peek(request.board_date)
    if existing is not None:
        return existing
    return BoardSession(registry.gateway, registry.roster, request.board_date, registry.config)


@router.post("/{run_id}/assignments")
async def assign_pets(run_id: str, request: PickerAssignRequest, registry: Registry) -> PickerResponse:
    """Assign one or more pets to a run for a date."""
    try:
        session = _session(registry, request)
        records = await session.assign_pets(
            run_id,
            request.pet_ids,
            start_time=request.start_time,
            end_time=request.end_time,
            booking_ids=request.booking_ids,
        )
        return PickerResponse(
            run_id=run_id,
            board_date=request.board_date,
            count=len(records),
            board_stale=session.controller.stale,
        )
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        logger.error(f"Error assigning pets to run {run_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to assign pets: {str(e)}") from e


@router.delete("/{run_id}/assignments")
async def remove_assignments(
    run_id: str, registry: Registry, request: Annotated[PickerRemoveRequest, Body()]
) -> PickerResponse:
    """Remove pets (by pet id or assignment id) from a run for a date."""
    if not request.pet_ids and not request.assignment_ids:
        raise HTTPException(status_code=422, detail="pet_ids or assignment_ids is required")
    try:
        session = _session(registry, request)
        removed = await session.remove_assignments(run_id, request.pet_ids, request.assignment_ids)
        return PickerResponse(
            run_id=run_id,
            board_date=request.board_date,
            count=removed,
            board_stale=session.controller.stale,
        )
    except RunboardError as e:
        raise http_error(e) from e
    except Exception as e:
        logger.error(f"Error removing assignments from run {run_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to remove assignments: {str(e)}") from e
