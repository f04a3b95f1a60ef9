"""
Pydantic schemas for the Run Board API.

Re-exports all schemas for convenient importing.
"""

from __future__ import annotations

from .board import (
    BeginPlacementRequest,
    BeginPlacementResponse,
    BoardResponse,
    ChangedResponse,
    ConfirmWindowRequest,
    DropRequest,
    DropResponse,
    PickerAssignRequest,
    PickerRemoveRequest,
    PickerResponse,
    PlacementResponse,
    ReorderRequest,
    SaveResponse,
    SelectionRequest,
    SlotSuggestionResponse,
    UnassignRequest,
    WindowResponse,
)

__all__ = [
    "BeginPlacementRequest",
    "BeginPlacementResponse",
    "BoardResponse",
    "ChangedResponse",
    "ConfirmWindowRequest",
    "DropRequest",
    "DropResponse",
    "PickerAssignRequest",
    "PickerRemoveRequest",
    "PickerResponse",
    "PlacementResponse",
    "ReorderRequest",
    "SaveResponse",
    "SelectionRequest",
    "SlotSuggestionResponse",
    "UnassignRequest",
    "WindowResponse",
]
