"""Errors raised by the directory lock."""

from .models import LockRecord


class DirectoryLockError(Exception):
    """Base exception for directory lock errors."""


class TargetMissingError(DirectoryLockError):
    """Raised when the directory to lock does not exist."""


class MalformedRecordError(DirectoryLockError):
    """Raised when a lock file exists but cannot be parsed."""


class LockIOError(DirectoryLockError):
    """Raised when reading, writing or removing the lock file fails."""


class LivenessQueryError(DirectoryLockError):
    """Raised when it cannot be determined whether a process is running."""


class AlreadyLockedError(DirectoryLockError):
    """Raised when a directory is locked by another live process."""

    def __init__(self, message: str, record: LockRecord | None = None) -> None:
        super().__init__(message)
        self.record = record


class LockOwnershipError(DirectoryLockError, RuntimeError):
    """Raised when a lock handle is rebound while it owns a lock."""
