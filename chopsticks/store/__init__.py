"""
Store module - Shared State Store used for online matches.

Provides:
- SharedStateStore: Abstract get/set/subscribe/query/delete interface
- InMemoryStore: Process-local implementation
"""

from .base import SharedStateStore, Snapshot, deep_merge
from .memory import InMemoryStore

__all__ = [
    "SharedStateStore",
    "Snapshot",
    "deep_merge",
    "InMemoryStore",
]
