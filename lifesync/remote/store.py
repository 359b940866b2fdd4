"""Document store backed by the sync service connection."""

import logging
from typing import Optional

from ..errors import StoreError, WriteConflictError
from ..sync.store import ErrorHandler, SnapshotHandler, Unsubscribe
from .client import CommandError, StoreClient

logger = logging.getLogger(__name__)


class WebSocketDocumentStore:
    """Per-user collections served over a StoreClient."""

    def __init__(self, client: StoreClient):
        """Initialize with a connected client."""
        self.client = client

    async def subscribe(
        self,
        user_id: str,
        collection: str,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Unsubscribe:
        def handle(message: dict):
            error = message.get("error")
            if error:
                on_error(StoreError(error.get("message", "Subscription failed")))
                return
            on_snapshot(message.get("event", {}).get("documents", []))

        try:
            subscription_id = await self.client.subscribe(
                "documents/subscribe", handle, user_id=user_id, collection=collection
            )
        except CommandError as e:
            raise StoreError(f"Subscribe to {collection} failed: {e.message}") from e

        logger.debug(f"Subscribed to {collection} for {user_id} (id={subscription_id})")
        return lambda: self.client.unsubscribe(subscription_id)

    async def write(self, user_id: str, collection: str, doc_id: str, document: dict):
        await self._command(
            "documents/write",
            user_id=user_id,
            collection=collection,
            doc_id=doc_id,
            document=document,
        )

    async def update(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
        fields: dict,
        expected: Optional[dict] = None,
    ):
        await self._command(
            "documents/update",
            user_id=user_id,
            collection=collection,
            doc_id=doc_id,
            fields=fields,
            expected=expected,
        )

    async def delete(self, user_id: str, collection: str, doc_id: str):
        await self._command(
            "documents/delete", user_id=user_id, collection=collection, doc_id=doc_id
        )

    async def _command(self, command_type: str, **kwargs):
        try:
            return await self.client.send_command(command_type, **kwargs)
        except CommandError as e:
            if e.code == "conflict":
                raise WriteConflictError(e.message) from e
            raise StoreError(f"{command_type} failed: {e.message}") from e
