"""In-memory document store for local mode and tests."""

import copy
import logging
from typing import Optional

from ..errors import StoreError, WriteConflictError
from .store import ErrorHandler, SnapshotHandler, Unsubscribe

logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    """
    Document store held in process memory.

    Snapshots are delivered synchronously: subscribing delivers the current
    collection immediately and every write re-delivers it before returning.
    """

    def __init__(self):
        self._docs: dict[tuple[str, str], dict[str, dict]] = {}
        self._subscribers: dict[tuple[str, str], list[tuple[SnapshotHandler, ErrorHandler]]] = {}
        self.fail_writes: Optional[Exception] = None

    def documents(self, user_id: str, collection: str) -> list[dict]:
        """Current documents in a collection, in insertion order."""
        return [copy.deepcopy(doc) for doc in self._docs.get((user_id, collection), {}).values()]

    def get(self, user_id: str, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._docs.get((user_id, collection), {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def subscribe(
        self,
        user_id: str,
        collection: str,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Unsubscribe:
        key = (user_id, collection)
        entry = (on_snapshot, on_error)
        self._subscribers.setdefault(key, []).append(entry)
        logger.debug(f"Subscribed to {collection} for {user_id}")
        on_snapshot(self.documents(user_id, collection))

        def unsubscribe():
            handlers = self._subscribers.get(key, [])
            if entry in handlers:
                handlers.remove(entry)

        return unsubscribe

    async def write(self, user_id: str, collection: str, doc_id: str, document: dict):
        self._check_writable()
        self._docs.setdefault((user_id, collection), {})[doc_id] = copy.deepcopy(document)
        self._notify(user_id, collection)

    async def update(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
        fields: dict,
        expected: Optional[dict] = None,
    ):
        self._check_writable()
        docs = self._docs.get((user_id, collection), {})
        if doc_id not in docs:
            raise StoreError(f"No document {collection}/{doc_id}")

        current = docs[doc_id]
        for key, value in (expected or {}).items():
            if current.get(key) != value:
                raise WriteConflictError(
                    f"{collection}/{doc_id} changed: {key} no longer matches"
                )

        current.update(copy.deepcopy(fields))
        self._notify(user_id, collection)

    async def delete(self, user_id: str, collection: str, doc_id: str):
        self._check_writable()
        self._docs.get((user_id, collection), {}).pop(doc_id, None)
        self._notify(user_id, collection)

    def fail_subscription(self, user_id: str, collection: str, error: Exception):
        """Deliver an error to every subscriber of a collection."""
        for _, on_error in list(self._subscribers.get((user_id, collection), [])):
            on_error(error)

    def subscriber_count(self, user_id: str, collection: str) -> int:
        return len(self._subscribers.get((user_id, collection), []))

    def _check_writable(self):
        if self.fail_writes is not None:
            raise self.fail_writes

    def _notify(self, user_id: str, collection: str):
        snapshot = self.documents(user_id, collection)
        for on_snapshot, _ in list(self._subscribers.get((user_id, collection), [])):
            on_snapshot(copy.deepcopy(snapshot))
