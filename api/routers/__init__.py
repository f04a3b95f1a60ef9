"""
API Routers - Organized endpoint handlers for the Run Board API.

Each router handles a specific domain:
- board: One date's working board (placements, reorders, save, discard, slots)
- runs: Incremental picker assignments written straight to the backend
"""
