"""Lock status enumeration."""

from enum import Enum


class LockStatus(str, Enum):
    """State of a directory lock, derived from the lock file and the process table.

    Never stored: always recomputed from the current lock file contents.
    """

    UNLOCKED = "unlocked"
    LOCKED = "locked"
    STALE = "stale"
