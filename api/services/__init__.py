"""
API Services - Shared state and orchestration for the Run Board API.
"""

from .board_sessions import BoardSessionRegistry

__all__ = ["BoardSessionRegistry"]
