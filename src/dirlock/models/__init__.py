"""Pydantic data models for dirlock.

- Lock file ownership records (LockRecord)
- Lock requester identities (Identity)
- Derived lock states (LockStatus)
"""

from .identity import Identity
from .record import LockRecord, utc_now
from .status import LockStatus

__all__ = [
    "Identity",
    "LockRecord",
    "LockStatus",
    "utc_now",
]
