"""Keeps the in-memory working set in step with the cache and the document store."""

import asyncio
import json
import logging
from functools import partial
from typing import Callable, Optional

import pydantic

from ..errors import BackupImportError
from ..habits.models import (
    CompletionProof,
    Expense,
    Habit,
    JournalEntry,
    Todo,
    UserDocument,
    WorkingSet,
)
from .cache import LocalCache, cache_key
from .store import (
    COLLECTIONS,
    EXPENSES,
    JOURNAL,
    PROFILE,
    PROOFS,
    TASKS,
    TODOS,
    DocumentStore,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = {
    TASKS: Habit,
    PROOFS: CompletionProof,
    JOURNAL: JournalEntry,
    TODOS: Todo,
    EXPENSES: Expense,
}

# Keys a backup may carry
BACKUP_KEYS = ("tasks", "proofs", "journal", "todos", "expenses", "settings", "profile")

ChangeListener = Callable[[WorkingSet], None]


class SyncReconciler:
    """
    Hydrates a user's working set locally, then lets remote snapshots win.

    Snapshots replace a collection wholesale; nothing is merged and nothing
    is applied optimistically. Every change is written back to the cache.
    """

    def __init__(self, store: DocumentStore, cache: LocalCache):
        self.store = store
        self.cache = cache
        self.state = WorkingSet()
        self.user_id: Optional[str] = None
        self._unsubscribers: list[Unsubscribe] = []
        self._listeners: list[ChangeListener] = []
        self._pending: set[asyncio.Task] = set()

    def add_listener(self, listener: ChangeListener):
        """Call listener with the working set after every change."""
        self._listeners.append(listener)

    async def start(self, user_id: str):
        """
        Begin a session for user_id.

        Hydrates from the local cache first, then opens one subscription per
        collection. A subscription that cannot be opened is logged and its
        collection keeps the cached value.
        """
        if self.user_id is not None:
            self.stop()

        logger.info(f"Starting sync session for {user_id}")
        self.user_id = user_id
        self._hydrate(user_id)

        results = await asyncio.gather(
            *(self._subscribe(user_id, collection) for collection in COLLECTIONS),
            return_exceptions=True,
        )
        for collection, result in zip(COLLECTIONS, results):
            if isinstance(result, Exception):
                logger.error(f"Could not subscribe to {collection}: {result}")
            elif self.user_id == user_id:
                self._unsubscribers.append(result)
            else:
                # Session ended while subscribing
                result()

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def stop(self):
        """End the session: cancel subscriptions and clear the working set."""
        if self.user_id is None:
            return

        logger.info(f"Stopping sync session for {self.user_id}")
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

        for task in self._pending:
            task.cancel()
        self._pending.clear()

        self.user_id = None
        self.state = WorkingSet()
        self._notify()

    async def _subscribe(self, user_id: str, collection: str) -> Unsubscribe:
        return await self.store.subscribe(
            user_id,
            collection,
            partial(self._on_snapshot, user_id, collection),
            partial(self._on_error, user_id, collection),
        )

    def _hydrate(self, user_id: str):
        """Load the cached working set, if any."""
        saved = self.cache.get(cache_key(user_id))
        if not saved:
            logger.info(f"No local cache for {user_id}")
            return

        try:
            self.state = WorkingSet.model_validate_json(saved)
        except pydantic.ValidationError as e:
            logger.error(f"Error loading local cache for {user_id}: {e}")
            return

        logger.info(
            f"Hydrated {len(self.state.tasks)} tasks and "
            f"{len(self.state.proofs)} proofs from local cache"
        )
        self._notify()

    def _on_snapshot(self, user_id: str, collection: str, documents: list[dict]):
        if user_id != self.user_id:
            logger.debug(f"Dropping {collection} snapshot for ended session {user_id}")
            return

        if collection == PROFILE:
            self._apply_profile(user_id, documents)
            return

        model = DOCUMENT_TYPES[collection]
        items = []
        for doc in documents:
            try:
                items.append(model.model_validate(doc))
            except pydantic.ValidationError as e:
                logger.warning(f"Skipping malformed {collection} document {doc.get('id')}: {e}")

        if collection in (JOURNAL, EXPENSES):
            items.sort(key=lambda item: item.date, reverse=True)

        setattr(self.state, collection, items)
        logger.debug(f"Applied {collection} snapshot ({len(items)} documents)")
        self._changed()

    def _apply_profile(self, user_id: str, documents: list[dict]):
        doc = next((d for d in documents if d.get("id", user_id) == user_id), None)
        if doc is None:
            logger.info(f"No profile document for {user_id}, creating default")
            self._schedule(self._create_profile(user_id))
            return

        try:
            user_doc = UserDocument.model_validate(doc)
        except pydantic.ValidationError as e:
            logger.warning(f"Skipping malformed profile document: {e}")
            return

        self.state.settings = user_doc.settings
        self.state.profile = user_doc.profile
        self._changed()

    async def _create_profile(self, user_id: str):
        document = {"id": user_id, **UserDocument().to_document()}
        try:
            await self.store.write(user_id, PROFILE, user_id, document)
        except Exception as e:
            logger.error(f"Could not create profile document for {user_id}: {e}")

    def _on_error(self, user_id: str, collection: str, error: Exception):
        # Keep the last known value rather than blanking the collection
        logger.error(f"Sync {collection} error for {user_id}: {error}")

    def _schedule(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _changed(self):
        self.persist()
        self._notify()

    def _notify(self):
        for listener in self._listeners:
            listener(self.state)

    def persist(self):
        """Write the full working set to the local cache."""
        if self.user_id is None:
            return
        self.cache.set(cache_key(self.user_id), self.state.model_dump_json(by_alias=True))

    def export_data(self, user: Optional[dict] = None) -> str:
        """Serialize the working set (and optionally the user) as a JSON backup."""
        data = {"user": user, **self.state.to_document()}
        return json.dumps(data)

    def import_data(self, text: str):
        """
        Replace in-memory collections from a JSON backup.

        The whole backup is validated before anything is applied; keys the
        backup does not carry keep their current value.

        Raises:
            BackupImportError: If the backup is malformed
        """
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("backup must be a JSON object")
            merged = self.state.to_document()
            merged.update({key: data[key] for key in BACKUP_KEYS if data.get(key) is not None})
            imported = WorkingSet.model_validate(merged)
        except (ValueError, pydantic.ValidationError) as e:
            raise BackupImportError(f"Invalid backup: {e}") from e

        self.state = imported
        logger.info(f"Imported backup with {len(imported.tasks)} tasks")
        self._changed()

    def reset_local(self):
        """Remove the local cache entry for the current user."""
        if self.user_id is not None:
            self.cache.remove(cache_key(self.user_id))
