"""
Persistence and roster contracts consumed by the board.

Adapters translate a concrete backend into these async calls. Every payload
is decoded through ``runboard.gateway.schema``; transport failures raise
``GatewayError`` and shape mismatches raise ``SchemaMismatchError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date

from ..models import AssignmentRecord, BoardDay, Pet, SlotWindow


class PersistenceGateway(ABC):
    """Backend holding runs and per-day assignments."""

    @abstractmethod
    async def fetch_for_date(self, board_date: date) -> BoardDay:
        """Runs and their current assignments for ``board_date``."""

    @abstractmethod
    async def available_slots(self, run_id: str, board_date: date) -> list[SlotWindow]:
        """Ordered advisory windows for a run on a date."""

    @abstractmethod
    async def save_all(self, board_date: date, records: Sequence[AssignmentRecord]) -> list[AssignmentRecord]:
        """Idempotent replace-all of every assignment for ``board_date``.

        All-or-nothing from the caller's view. Returns the canonical saved list.
        """

    @abstractmethod
    async def assign_pets(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str],
        start_time: str | None = None,
        end_time: str | None = None,
        booking_ids: Sequence[str | None] | None = None,
    ) -> list[AssignmentRecord]:
        """Incrementally add pets to a run (picker dialog flow)."""

    @abstractmethod
    async def remove_assignments(
        self,
        run_id: str,
        board_date: date,
        pet_ids: Sequence[str] | None = None,
        assignment_ids: Sequence[str] | None = None,
    ) -> int:
        """Incrementally remove pets from a run. Returns how many were removed."""


class RosterSource(ABC):
    """Read-only list of pets checked in on a date."""

    @abstractmethod
    async def checked_in_pets(self, board_date: date) -> list[Pet]:
        """Checked-in pets for ``board_date`` with owner and flag metadata."""
