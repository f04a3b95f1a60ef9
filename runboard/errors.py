"""Run board error classes.

Validation errors are raised before any draft mutation. Gateway errors are
raised by persistence adapters; callers keep their optimistic local state.
"""

from __future__ import annotations


class RunboardError(Exception):
    """Base exception for run board errors."""

    pass


class BoardValidationError(RunboardError):
    """Raised when an operator action is rejected locally."""

    pass


class InvalidTimeError(BoardValidationError):
    """Raised when a time-of-day string is not a valid HH:MM value."""

    pass


class InvalidWindowError(BoardValidationError):
    """Raised when a placement window does not start before it ends."""

    pass


class UnknownRunError(BoardValidationError):
    """Raised when a run id is not part of the seeded board."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run '{run_id}' is not on the board")


class CrossRunReorderError(BoardValidationError):
    """Raised when a caller tries to splice a pet between two run lists."""

    pass


class PlacementBusyError(RunboardError):
    """Raised when a placement flow is already pending or committing."""

    pass


class NoPendingPlacementError(RunboardError):
    """Raised when confirming a window with no placement awaiting confirmation."""

    pass


class NotSeededError(RunboardError):
    """Raised when dirty-checking a board that has not been seeded yet."""

    pass


class GatewayError(RunboardError):
    """Raised when the persistence backend cannot complete a call."""

    pass


class GatewayTimeoutError(GatewayError):
    """Raised when a persistence call exceeds its timeout."""

    pass


class SchemaMismatchError(GatewayError):
    """Raised when a backend payload does not match the expected schema."""

    pass
