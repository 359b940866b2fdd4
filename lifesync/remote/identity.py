"""Identity provider backed by the sync service connection."""

import logging
from typing import Callable, Optional

from ..errors import AuthError
from ..identity import Session, SessionListener
from .client import CommandError, StoreClient

logger = logging.getLogger(__name__)


class WebSocketIdentityProvider:
    """Account operations sent as "auth/*" commands."""

    def __init__(self, client: StoreClient):
        """Initialize with a connected client."""
        self.client = client
        self.current: Optional[Session] = None
        self._listeners: list[SessionListener] = []

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_in(self, email: str, password: str) -> Session:
        result = await self._command("auth/sign_in", email=email, password=password)
        return await self._set_current(self._parse_session(result))

    async def sign_up(self, email: str, password: str, display_name: str) -> Session:
        result = await self._command(
            "auth/sign_up", email=email, password=password, display_name=display_name
        )
        return await self._set_current(self._parse_session(result))

    async def sign_out(self):
        await self._command("auth/sign_out")
        await self._set_current(None)

    async def send_password_reset(self, email: str):
        await self._command("auth/password_reset", email=email)

    async def update_profile(
        self, display_name: Optional[str] = None, photo_url: Optional[str] = None
    ) -> Session:
        result = await self._command(
            "auth/update_profile", display_name=display_name, photo_url=photo_url
        )
        self.current = self._parse_session(result)
        return self.current

    async def update_password(self, new_password: str):
        await self._command("auth/update_password", new_password=new_password)

    def _parse_session(self, result: dict) -> Session:
        return Session(
            uid=result["uid"],
            email=result.get("email", ""),
            display_name=result.get("displayName"),
            photo_url=result.get("photoURL"),
        )

    async def _set_current(self, session: Optional[Session]) -> Optional[Session]:
        self.current = session
        for listener in list(self._listeners):
            await listener(session)
        return session

    async def _command(self, command_type: str, **kwargs):
        try:
            return await self.client.send_command(command_type, **kwargs)
        except CommandError as e:
            logger.debug(f"{command_type} failed: {e.code}")
            raise AuthError(e.message, code=e.code) from e
