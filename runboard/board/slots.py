"""
Slot Suggestion Calculator.

Times are facility-local wall-clock strings ("HH:MM", 24-hour) and all
arithmetic is integer minutes wrapped at 24h; nothing here is timezone aware.
Because the format is fixed-width, plain string comparison orders times
correctly within a day.

The slot list returned by a backend is advisory: it flags windows that are at
capacity but never blocks a window the operator chooses.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from ..config import BoardConfig
from ..errors import GatewayError, InvalidTimeError
from ..logging_config import get_logger
from ..models import Assignment, CapacityType, Run, SlotWindow, is_valid_time

if TYPE_CHECKING:
    from ..gateway.base import PersistenceGateway

logger = get_logger(__name__)

MINUTES_PER_DAY = 24 * 60


def parse_time(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    if not is_valid_time(value):
        raise InvalidTimeError(f"'{value}' is not a HH:MM time")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_time(total_minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM", wrapping at 24h."""
    total_minutes %= MINUTES_PER_DAY
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def compute_end_time(start_time: str, period_minutes: int) -> str:
    """End of a window of ``period_minutes`` starting at ``start_time``.

    >>> compute_end_time("23:50", 20)
    '00:10'
    """
    return format_time(parse_time(start_time) + period_minutes)


def end_time_for(run: Run, start_time: str) -> str | None:
    """Auto-derived end time, or None when the run has no configured period."""
    if not run.time_period_minutes:
        return None
    return compute_end_time(start_time, run.time_period_minutes)


def candidate_grid(start: str = "07:00", end: str = "20:00", interval: int = 15) -> list[str]:
    """Fixed start-time grid from ``start`` (inclusive) to ``end`` (exclusive)."""
    return [format_time(m) for m in range(parse_time(start), parse_time(end), interval)]


def end_candidates(start_time: str, grid: list[str]) -> list[str]:
    """Grid entries that can end a window starting at ``start_time``."""
    return [t for t in grid if t > start_time]


def windows_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return a_start < b_end and b_start < a_end


def compute_windows(run: Run, existing: list[Assignment], config: BoardConfig | None = None) -> list[SlotWindow]:
    """Build the day's windows for a run from its current assignments.

    Used by backends that have no available-slots query of their own. Windows
    are consecutive blocks of the run's period (or the default step) across the
    grid hours. A ``total`` run is unavailable once it holds ``max_capacity``
    pets; a ``concurrent`` run is unavailable for windows already overlapped by
    ``max_capacity`` assignments.
    """
    config = config or BoardConfig()
    step = run.time_period_minutes or config.default_step_minutes
    day_start = parse_time(config.grid_start)
    day_end = parse_time(config.grid_end)
    full_for_day = len(existing) >= run.max_capacity

    windows: list[SlotWindow] = []
    minute = day_start
    while minute + step <= day_end:
        window_start = format_time(minute)
        window_end = format_time(minute + step)
        if run.capacity_type == CapacityType.CONCURRENT:
            overlapping = sum(
                1 for a in existing if windows_overlap(a.start_time, a.end_time, window_start, window_end)
            )
            available = overlapping < run.max_capacity
        else:
            available = not full_for_day
        windows.append(SlotWindow(start_time=window_start, end_time=window_end, available=available))
        minute += step
    return windows


def rank_windows(windows: list[SlotWindow]) -> list[SlotWindow]:
    """Open windows first; original order is kept within each group."""
    return sorted(windows, key=lambda w: not w.available)


@dataclass(frozen=True)
class SlotSuggestion:
    """Default window plus the options offered for one run on one date."""

    run_id: str
    start_time: str
    end_time: str
    period_minutes: int | None
    windows: tuple[SlotWindow, ...] = ()
    candidates: tuple[str, ...] = ()

    @property
    def ranked_windows(self) -> list[SlotWindow]:
        return rank_windows(list(self.windows))

    def end_time_for(self, start_time: str) -> str | None:
        if not self.period_minutes:
            return None
        return compute_end_time(start_time, self.period_minutes)

    def is_flagged(self, start_time: str, end_time: str) -> bool:
        """True if the chosen window is listed and may be at capacity."""
        return any(
            w.start_time == start_time and w.end_time == end_time and not w.available for w in self.windows
        )


class SlotCalculator:
    """Computes default windows and candidate start times for placements."""

    def __init__(self, gateway: PersistenceGateway | None = None, config: BoardConfig | None = None):
        self.gateway = gateway
        self.config = config or BoardConfig()

    def grid(self) -> list[str]:
        return candidate_grid(self.config.grid_start, self.config.grid_end, self.config.grid_interval_minutes)

    async def fetch_windows(self, run_id: str, board_date: date) -> list[SlotWindow]:
        """Ask the backend for open windows; failures degrade to no list."""
        if self.gateway is None:
            return []
        try:
            return await asyncio.wait_for(
                self.gateway.available_slots(run_id, board_date),
                timeout=self.config.gateway_timeout_seconds,
            )
        except (GatewayError, TimeoutError) as e:
            logger.warning(f"Available slots unavailable for run {run_id} on {board_date}: {e}")
            return []

    async def suggest(self, run: Run, board_date: date) -> SlotSuggestion:
        windows = await self.fetch_windows(run.id, board_date)

        next_available = next((w for w in windows if w.available), None)
        if next_available is not None:
            start_time, end_time = next_available.start_time, next_available.end_time
        else:
            start_time = self.config.default_start_time
            end_time = compute_end_time(start_time, run.time_period_minutes or self.config.default_step_minutes)

        candidates = [w.start_time for w in windows] if windows else self.grid()

        return SlotSuggestion(
            run_id=run.id,
            start_time=start_time,
            end_time=end_time,
            period_minutes=run.time_period_minutes,
            windows=tuple(windows),
            candidates=tuple(candidates),
        )
