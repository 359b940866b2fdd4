"""Document store interface consumed by the engine."""

from typing import Callable, Optional, Protocol

# Collections kept per user
TASKS = "tasks"
PROOFS = "proofs"
JOURNAL = "journal"
TODOS = "todos"
EXPENSES = "expenses"
PROFILE = "profile"

COLLECTIONS = (TASKS, PROOFS, JOURNAL, TODOS, EXPENSES, PROFILE)

SnapshotHandler = Callable[[list[dict]], None]
ErrorHandler = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    """
    Remote per-user document collections with live snapshots.

    A subscription delivers the full current set of documents in the
    collection, once right after subscribing and again after every change.
    Writes never touch local state; their effect comes back as a snapshot.
    """

    async def subscribe(
        self,
        user_id: str,
        collection: str,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Unsubscribe:
        ...

    async def write(self, user_id: str, collection: str, doc_id: str, document: dict):
        ...

    async def update(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
        fields: dict,
        expected: Optional[dict] = None,
    ):
        """
        Merge fields into an existing document.

        If expected is given, every key in it must equal the stored value or
        the update is rejected with WriteConflictError.
        """
        ...

    async def delete(self, user_id: str, collection: str, doc_id: str):
        ...
