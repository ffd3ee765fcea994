"""
In-memory store - Single-process Shared State Store.

Documents are kept as JSON text so every write proves the payload is
serializable and every read returns an independent copy. Subscribers
are notified on the running event loop, after the write returns,
imitating a remote push.
"""

from __future__ import annotations
from collections import defaultdict
import asyncio
import json
import logging

from .base import (
    SharedStateStore, Snapshot, SnapshotCallback, Predicate, Unsubscribe,
    deep_merge, matches,
)
from ..errors import StoreWriteFailure


logger = logging.getLogger(__name__)


class InMemoryStore(SharedStateStore):
    """
    Usage:
        store = InMemoryStore()
        await store.set("ABC123", state.to_dict())
        unsubscribe = store.subscribe("ABC123", on_snapshot)
    """

    def __init__(self):
        self._documents: dict[str, str] = {}
        self._subscribers: dict[str, list[SnapshotCallback]] = defaultdict(list)

    async def get(self, key: str) -> Snapshot | None:
        return self._read(key)

    async def set(self, key: str, data: Snapshot, merge: bool = False) -> None:
        if merge and key in self._documents:
            data = deep_merge(self._read(key), data)
        self._write(key, data)

    def subscribe(self, key: str, callback: SnapshotCallback) -> Unsubscribe:
        self._subscribers[key].append(callback)
        self._schedule(callback, self._read(key))

        def unsubscribe():
            if callback in self._subscribers.get(key, []):
                self._subscribers[key].remove(callback)

        return unsubscribe

    async def query(self, predicate: Predicate) -> list[tuple[str, Snapshot]]:
        results = []
        for key in list(self._documents):
            document = self._read(key)
            if predicate(document):
                results.append((key, document))
        return results

    async def delete(self, key: str) -> None:
        if self._documents.pop(key, None) is not None:
            logger.debug("Deleted %s", key)
            self._notify(key)

    async def update_if(self, key: str, expected: Snapshot, changes: Snapshot) -> bool:
        # No await between the check and the write: atomic on the event loop
        document = self._read(key)
        if document is None or not matches(document, expected):
            return False
        self._write(key, deep_merge(document, changes))
        return True

    def _read(self, key: str) -> Snapshot | None:
        text = self._documents.get(key)
        return json.loads(text) if text is not None else None

    def _write(self, key: str, data: Snapshot) -> None:
        try:
            self._documents[key] = json.dumps(data)
        except (TypeError, ValueError) as e:
            raise StoreWriteFailure(f"Document {key} is not JSON serializable: {e}") from e
        self._notify(key)

    def _notify(self, key: str) -> None:
        for callback in list(self._subscribers.get(key, [])):
            self._schedule(callback, self._read(key))

    def _schedule(self, callback: SnapshotCallback, document: Snapshot | None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback(document)
            return
        loop.call_soon(callback, document)
