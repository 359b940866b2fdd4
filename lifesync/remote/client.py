"""WebSocket client for the remote document/identity service."""

import asyncio
import json
import logging
from typing import Callable, Optional

import websockets

from ..errors import StoreError

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict], None]


class CommandError(Exception):
    """The server answered a command with success=false."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class StoreClient:
    """
    Authenticated JSON command connection.

    Commands carry an incrementing id; the server answers each with a
    "result" message carrying the same id. Subscriptions are commands whose
    id is later reused by server-pushed "event" messages.
    """

    def __init__(self, store_url: str, token: str):
        """
        Initialize client.

        Args:
            store_url: Service URL (e.g., https://sync.example.com)
            token: Service access token
        """
        self.store_url = store_url
        self.token = token
        self.ws_url = self._convert_to_ws_url(store_url)
        self.websocket = None
        self._message_id = 0
        self._pending: dict[int, asyncio.Future] = {}
        self._handlers: dict[int, EventHandler] = {}
        self._reader: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()

    def _convert_to_ws_url(self, http_url: str) -> str:
        """Convert HTTP URL to WebSocket URL."""
        ws_url = http_url.replace("http://", "ws://").replace("https://", "wss://")
        if not ws_url.endswith("/"):
            ws_url += "/"
        return ws_url + "api/websocket"

    @property
    def connected(self) -> bool:
        return self.websocket is not None

    async def connect(self):
        """Connect, authenticate and start reading server messages."""
        logger.info(f"Connecting to {self.ws_url}")

        self.websocket = await websockets.connect(self.ws_url)

        auth_required = json.loads(await self.websocket.recv())
        logger.debug(f"Auth required: {auth_required}")

        if auth_required.get("type") != "auth_required":
            await self._close()
            raise StoreError(f"Unexpected message: {auth_required}")

        await self.websocket.send(json.dumps({"type": "auth", "access_token": self.token}))

        auth_result = json.loads(await self.websocket.recv())
        logger.debug(f"Auth result: {auth_result}")

        if auth_result.get("type") != "auth_ok":
            await self._close()
            raise StoreError(f"Authentication failed: {auth_result}")

        self._reader = asyncio.get_running_loop().create_task(self._read_loop())
        logger.info("✓ Connected and authenticated to sync service")

    async def disconnect(self):
        """Stop reading and close the connection."""
        if self._reader:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        await self._close()

    async def _close(self):
        if self.websocket:
            await self.websocket.close()
            self.websocket = None
            logger.info("Disconnected from sync service")

    async def _read_loop(self):
        try:
            async for raw in self.websocket:
                self._dispatch(json.loads(raw))
        except websockets.ConnectionClosed as e:
            logger.warning(f"Connection closed: {e}")
        finally:
            self._fail_all("Connection to sync service lost")

    def _dispatch(self, message: dict):
        message_id = message.get("id")
        message_type = message.get("type")

        if message_type == "result":
            future = self._pending.pop(message_id, None)
            if future is None or future.done():
                logger.debug(f"Ignoring result for unknown id={message_id}")
                return
            if message.get("success"):
                future.set_result(message.get("result"))
            else:
                error = message.get("error") or {}
                future.set_exception(
                    CommandError(error.get("code", "unknown"), error.get("message", "Unknown error"))
                )
        elif message_type == "event":
            handler = self._handlers.get(message_id)
            if handler is None:
                logger.debug(f"Ignoring event for closed subscription id={message_id}")
                return
            handler(message)
        else:
            logger.warning(f"Unexpected message: {message}")

    def _fail_all(self, reason: str):
        for future in self._pending.values():
            if not future.done():
                future.set_exception(CommandError("connection_lost", reason))
        self._pending.clear()
        for handler in list(self._handlers.values()):
            handler({"type": "event", "error": {"code": "connection_lost", "message": reason}})

    async def send_command(self, command_type: str, **kwargs):
        """
        Send a command and wait for its result.

        Args:
            command_type: Command type (e.g., "documents/write")
            **kwargs: Additional command parameters

        Returns:
            The command's result payload

        Raises:
            CommandError: If the server reports failure or the connection drops
        """
        message_id = self._next_id()
        return await self._send(message_id, command_type, **kwargs)

    async def subscribe(self, command_type: str, handler: EventHandler, **kwargs) -> int:
        """
        Open a subscription; handler receives every event message for it.

        Returns:
            Subscription id
        """
        message_id = self._next_id()
        self._handlers[message_id] = handler
        try:
            await self._send(message_id, command_type, **kwargs)
        except Exception:
            self._handlers.pop(message_id, None)
            raise
        return message_id

    def unsubscribe(self, subscription_id: int):
        """Stop delivering events now; tell the server in the background."""
        if self._handlers.pop(subscription_id, None) is None:
            return
        if not self.connected:
            return
        task = asyncio.get_running_loop().create_task(
            self._send_unsubscribe(subscription_id)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_unsubscribe(self, subscription_id: int):
        try:
            await self.send_command("unsubscribe", subscription=subscription_id)
        except CommandError as e:
            logger.warning(f"Unsubscribe {subscription_id} failed: {e}")

    def _next_id(self) -> int:
        self._message_id += 1
        return self._message_id

    async def _send(self, message_id: int, command_type: str, **kwargs):
        if not self.websocket:
            raise CommandError("not_connected", "Not connected to sync service")

        future = asyncio.get_running_loop().create_future()
        self._pending[message_id] = future

        logger.debug(f"Sending command: {command_type} (id={message_id})")
        try:
            await self.websocket.send(json.dumps({"id": message_id, "type": command_type, **kwargs}))
        except websockets.ConnectionClosed as e:
            self._pending.pop(message_id, None)
            raise CommandError("connection_lost", str(e)) from e
        return await future
