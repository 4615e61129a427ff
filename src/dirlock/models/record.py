"""Lock record model.

The ownership fingerprint written to ``<directory>/.lock`` by the process
holding the lock.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .identity import Identity


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class LockRecord(BaseModel):
    """Ownership fingerprint of a directory lock.

    Attributes:
        display_name: Human readable name of the holder (may be empty).
        login_name: Login name of the holder.
        host_name: Host the holder runs on.
        pid: Process ID of the holder at acquisition time.
        process_start_time: Start time of the holder process, used to
            detect PID reuse.
        lock_time: When the lock file was written. ``None`` for records
            written by older writers that omit it.
    """

    model_config = ConfigDict(frozen=True)

    display_name: str = Field(default="", description="Full name of the lock holder")
    login_name: str = Field(description="Login name of the lock holder")
    host_name: str = Field(description="Host name of the lock holder")
    pid: int = Field(description="Process ID holding the lock")
    process_start_time: datetime = Field(description="Start time of the holding process")
    lock_time: datetime | None = Field(default_factory=utc_now)

    @field_validator("process_start_time", "lock_time")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        # Naive timestamps are UTC by convention
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @classmethod
    def for_identity(cls, identity: Identity, lock_time: datetime | None = None) -> "LockRecord":
        """Build the record a process with this identity writes when locking."""
        return cls(
            display_name=identity.display_name,
            login_name=identity.login_name,
            host_name=identity.host_name,
            pid=identity.pid,
            process_start_time=identity.process_start_time,
            lock_time=lock_time or utc_now(),
        )
