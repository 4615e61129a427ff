"""Core locking logic for dirlock.

- codec: Lock file serialization
- directory_lock: Lock handle, staleness evaluation and open_or_fail
"""

from .codec import decode_record, encode_record, format_timestamp, parse_timestamp
from .directory_lock import (
    LOCK_FILE,
    DirectoryLock,
    evaluate_staleness,
    lock_file_path,
    open_or_fail,
)

__all__ = [
    "LOCK_FILE",
    "DirectoryLock",
    "decode_record",
    "encode_record",
    "evaluate_staleness",
    "format_timestamp",
    "lock_file_path",
    "open_or_fail",
    "parse_timestamp",
]
