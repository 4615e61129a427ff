"""dirlock: filesystem-only cross-process directory locking."""

__version__ = "0.1.0"

from .config import DirlockConfig, LockConfig, load_config
from .core import DirectoryLock, decode_record, encode_record, evaluate_staleness, open_or_fail
from .errors import (
    AlreadyLockedError,
    DirectoryLockError,
    LivenessQueryError,
    LockIOError,
    LockOwnershipError,
    MalformedRecordError,
    TargetMissingError,
)
from .identity import current_display_name, current_host_name, current_identity, current_login_name
from .liveness import LivenessOracle, ProcfsLivenessOracle, PsutilLivenessOracle, default_oracle
from .models import Identity, LockRecord, LockStatus

__all__ = [
    "AlreadyLockedError",
    "DirectoryLock",
    "DirectoryLockError",
    "DirlockConfig",
    "Identity",
    "LivenessOracle",
    "LivenessQueryError",
    "LockConfig",
    "LockIOError",
    "LockOwnershipError",
    "LockRecord",
    "LockStatus",
    "MalformedRecordError",
    "ProcfsLivenessOracle",
    "PsutilLivenessOracle",
    "TargetMissingError",
    "__version__",
    "current_display_name",
    "current_host_name",
    "current_identity",
    "current_login_name",
    "decode_record",
    "default_oracle",
    "encode_record",
    "evaluate_staleness",
    "load_config",
    "open_or_fail",
]
