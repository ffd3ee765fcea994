"""
Shared State Store - Interface to the replicated document backend.

The store keeps one JSON-compatible document per room code. It gives no
locking: concurrent writers overwrite each other (last writer wins),
except for merge writes which only touch the fields they carry.

Implementations raise StoreWriteFailure when a write does not reach
the backend.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable
import copy


Snapshot = dict[str, Any]
SnapshotCallback = Callable[[Snapshot | None], None]
Predicate = Callable[[Snapshot], bool]
Unsubscribe = Callable[[], None]


def deep_merge(base: Snapshot, changes: Snapshot) -> Snapshot:
    """Merge nested dicts; values in changes win."""
    merged = copy.deepcopy(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def matches(document: Snapshot, expected: Snapshot) -> bool:
    """True if every expected top-level field has the expected value."""
    return all(document.get(key) == value for key, value in expected.items())


class SharedStateStore(ABC):
    """
    Abstract eventually-consistent document store.

    Callbacks receive the full document, or None once it is deleted.
    """

    @abstractmethod
    async def get(self, key: str) -> Snapshot | None:
        """Read a document, None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, data: Snapshot, merge: bool = False) -> None:
        """Write a document. With merge, nested fields are merged into the existing one."""
        pass

    @abstractmethod
    def subscribe(self, key: str, callback: SnapshotCallback) -> Unsubscribe:
        """Watch a document. The current value is delivered first."""
        pass

    @abstractmethod
    async def query(self, predicate: Predicate) -> list[tuple[str, Snapshot]]:
        """Return (key, document) pairs for which predicate holds."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a document. Deleting a missing key is not an error."""
        pass

    async def update_if(self, key: str, expected: Snapshot, changes: Snapshot) -> bool:
        """
        Merge changes into a document if its fields still match expected.

        This default reads then writes, so two callers can both succeed.
        Stores with conditional writes override it with an atomic version.
        """
        document = await self.get(key)
        if document is None or not matches(document, expected):
            return False
        await self.set(key, changes, merge=True)
        return True
