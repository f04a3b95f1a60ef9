"""
Board Session Registry - one working board per date for the API process.

The HTTP layer is stateless per request, so the draft for each date lives
here between calls. Sessions are created and seeded on first use.

Usage:
    registry = BoardSessionRegistry(gateway, roster, config)
    session = await registry.get(date(2026, 1, 6))
    session.view()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from runboard.board import BoardSession
from runboard.config import BoardConfig
from runboard.gateway import PersistenceGateway, RosterSource

logger = logging.getLogger(__name__)


class BoardSessionRegistry:
    """Keeps a BoardSession per date and seeds it lazily."""

    def __init__(self, gateway: PersistenceGateway, roster: RosterSource, config: BoardConfig | None = None):
        self.gateway = gateway
        self.roster = roster
        self.config = config or BoardConfig()
        self._sessions: dict[date, BoardSession] = {}
        self._lock = asyncio.Lock()

    async def get(self, board_date: date) -> BoardSession:
        """Session for ``board_date``, loading it from the backend if unseeded."""
        async with self._lock:
            session = self._sessions.get(board_date)
            if session is None:
                session = BoardSession(self.gateway, self.roster, board_date, self.config)
                self._sessions[board_date] = session
                logger.debug(f"Created board session for {board_date}")

        if not session.controller.is_seeded:
            await session.load()
        return session

    def peek(self, board_date: date) -> BoardSession | None:
        """Existing session for ``board_date`` without loading anything."""
        return self._sessions.get(board_date)

    def drop(self, board_date: date) -> bool:
        return self._sessions.pop(board_date, None) is not None

    def dates(self) -> list[date]:
        return sorted(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()
