"""Exception hierarchy for the habit engine and its collaborators."""

from typing import Optional


class LifeSyncError(Exception):
    """Base class for all application errors."""


class ValidationError(LifeSyncError):
    """A user action was rejected before any collaborator was called."""


class LockedDateError(ValidationError):
    """The day is in the future or outside the retroactive marking window."""


class AlreadyCompletedError(ValidationError):
    """The habit already has a completion for the day."""


class CollaboratorError(LifeSyncError):
    """An external service (identity, store, asset host) failed."""


class AuthError(CollaboratorError):
    """Identity provider rejected the request."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class StoreError(CollaboratorError):
    """Document store read or write failed."""


class WriteConflictError(StoreError):
    """A conditional update found the document changed underneath it."""


class UploadError(CollaboratorError):
    """Asset host rejected or failed an upload."""


class BackupImportError(LifeSyncError):
    """An imported backup could not be parsed; nothing was applied."""
