"""
Runboard - Core logic for placing checked-in pets into facility runs.

This package contains:
- models: Domain models (Pet, Run, Assignment, BoardDay)
- board: Draft store, reconciliation, placement orchestration and capacity
- gateway: Persistence and roster adapters (PocketBase, facility REST API)
- config: Board tuning values with environment and database overrides
"""

from runboard.board import BoardSession
from runboard.models import Assignment, BoardDay, Pet, Run

__all__ = ["Assignment", "BoardDay", "BoardSession", "Pet", "Run"]
