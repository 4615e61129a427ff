"""Identity model for lock requesters."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Identity(BaseModel):
    """Who is asking for a lock: user, host and process fingerprint.

    Attributes:
        display_name: Full name of the user (may be empty).
        login_name: Login name of the user.
        host_name: Host name of the machine.
        pid: Process ID.
        process_start_time: Start time of the process (UTC).
    """

    model_config = ConfigDict(frozen=True)

    display_name: str = ""
    login_name: str
    host_name: str
    pid: int = Field(description="Process ID of the lock requester")
    process_start_time: datetime

    @field_validator("display_name", "login_name", "host_name")
    @classmethod
    def _single_line(cls, value: str) -> str:
        return value.replace("\r", "").replace("\n", "")

    @field_validator("process_start_time")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
