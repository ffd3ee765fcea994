"""
Sync module - Keeps a client's match state in step with the shared store.
"""

from .controller import SyncController

__all__ = [
    "SyncController",
]
