"""Identity provider interface and an in-memory implementation."""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Protocol

from .errors import AuthError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Session:
    """The authenticated identity."""
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


SessionListener = Callable[[Optional[Session]], Awaitable[None]]


class IdentityProvider(Protocol):
    """Sign-in, sign-up and profile operations; failures raise AuthError."""

    async def sign_in(self, email: str, password: str) -> Session:
        ...

    async def sign_up(self, email: str, password: str, display_name: str) -> Session:
        ...

    async def sign_out(self):
        ...

    async def send_password_reset(self, email: str):
        ...

    async def update_profile(
        self, display_name: Optional[str] = None, photo_url: Optional[str] = None
    ) -> Session:
        ...

    async def update_password(self, new_password: str):
        ...

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register an async listener called with the session, or None on sign-out."""
        ...


def avatar_url(seed: str) -> str:
    """Default generated avatar for a new account."""
    return f"https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


class MemoryIdentityProvider:
    """Accounts kept in process memory, for local mode and tests."""

    def __init__(self):
        self._accounts: dict[str, dict] = {}
        self._listeners: list[SessionListener] = []
        self.current: Optional[Session] = None
        self.password_resets: list[str] = []

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_up(self, email: str, password: str, display_name: str) -> Session:
        key = email.lower()
        if key in self._accounts:
            raise AuthError("Email already in use.", code="email-already-in-use")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError("Password is too weak.", code="weak-password")

        session = Session(
            uid=uuid.uuid4().hex,
            email=email,
            display_name=display_name,
            photo_url=avatar_url(display_name),
        )
        self._accounts[key] = {"password": password, "session": session}
        logger.info(f"Created account {session.uid}")
        await self._set_current(session)
        return session

    async def sign_in(self, email: str, password: str) -> Session:
        account = self._accounts.get(email.lower())
        if account is None or account["password"] != password:
            raise AuthError("Invalid email or password.", code="invalid-credentials")
        await self._set_current(account["session"])
        return account["session"]

    async def sign_out(self):
        await self._set_current(None)

    async def send_password_reset(self, email: str):
        if email.lower() not in self._accounts:
            raise AuthError("No account for that email.", code="user-not-found")
        self.password_resets.append(email)

    async def update_profile(
        self, display_name: Optional[str] = None, photo_url: Optional[str] = None
    ) -> Session:
        account = self._current_account()
        session = replace(
            account["session"],
            display_name=display_name or account["session"].display_name,
            photo_url=photo_url or account["session"].photo_url,
        )
        account["session"] = session
        self.current = session
        return session

    async def update_password(self, new_password: str):
        account = self._current_account()
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise AuthError("Password is too weak.", code="weak-password")
        account["password"] = new_password

    def _current_account(self) -> dict:
        if self.current is None:
            raise AuthError("Not signed in.", code="no-current-user")
        return self._accounts[self.current.email.lower()]

    async def _set_current(self, session: Optional[Session]):
        self.current = session
        for listener in list(self._listeners):
            await listener(session)
