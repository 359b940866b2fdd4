"""User-facing notifications: toasts, sound cues and domain events."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)

# Domain events
COMPLETION = "completion"
TOAST = "toast"
SOUND = "sound"


@dataclass
class Toast:
    """A short message shown to the user."""
    message: str
    kind: str  # "success", "error", "info"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Publishes events to subscribers and keeps recent toasts."""

    def __init__(self, max_toasts: int = 20):
        self.max_toasts = max_toasts
        self.toasts: list[Toast] = []
        self._handlers: dict[str, list[Callable]] = {}

    def subscribe(self, event: str, handler: Callable) -> Callable[[], None]:
        """Register handler for an event; returns a callable that removes it."""
        handlers = self._handlers.setdefault(event, [])
        handlers.append(handler)

        def unsubscribe():
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: str, **payload):
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(**payload)
            except Exception:
                logger.exception(f"Handler for {event} failed")

    def toast(self, message: str, kind: str = "info") -> Toast:
        toast = Toast(message=message, kind=kind)
        self.toasts.append(toast)
        self.toasts = self.toasts[-self.max_toasts:] if self.max_toasts > 0 else []
        log = logger.warning if kind == "error" else logger.info
        log(f"[{kind}] {message}")
        self.emit(TOAST, toast=toast)
        return toast

    def sound(self, cue: str):
        """Request a sound cue ("click", "success", "error", "sparkle")."""
        self.emit(SOUND, cue=cue)

    def drain(self) -> list[Toast]:
        """Return and clear pending toasts."""
        toasts, self.toasts = self.toasts, []
        return toasts
