"""Lock file codec.

The lock file is UTF-8 text with one field per line, in this order:

    display_name        (may be empty)
    login_name
    host_name
    pid                 (decimal integer)
    process_start_time  (ISO-8601 UTC)
    lock_time           (ISO-8601 UTC)

Readers accept records without the last line (older writers did not
write it) and ignore any lines after it.
"""

import re
from datetime import UTC, datetime

from ..errors import MalformedRecordError
from ..models import LockRecord

RECORD_LINES = 6
MIN_RECORD_LINES = 5
_PID_RE = re.compile(r"\d+", re.ASCII)


def _clean(value: str) -> str:
    """Strip line breaks so a field always occupies exactly one line."""
    return value.replace("\r", "").replace("\n", "")


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as second-resolution ISO-8601 UTC."""
    return value.astimezone(UTC).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If text is not a valid ISO-8601 timestamp
    """
    value = datetime.fromisoformat(text.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def encode_record(record: LockRecord) -> bytes:
    """Serialize a lock record to the lock file format.

    Args:
        record: Record to serialize

    Returns:
        UTF-8 encoded content, exactly six newline-separated lines
    """
    lines = [
        _clean(record.display_name),
        _clean(record.login_name),
        _clean(record.host_name),
        str(record.pid),
        format_timestamp(record.process_start_time),
        format_timestamp(record.lock_time) if record.lock_time else "",
    ]
    return "\n".join(lines).encode("utf-8")


def decode_record(data: bytes) -> LockRecord:
    """Parse lock file content into a lock record.

    Args:
        data: Raw lock file content

    Returns:
        Parsed record

    Raises:
        MalformedRecordError: If the content is not a complete record
    """
    try:
        content = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedRecordError(f"Lock file is not valid UTF-8: {e}") from e

    lines = [line.removesuffix("\r") for line in content.split("\n")]
    if len(lines) < MIN_RECORD_LINES:
        raise MalformedRecordError(
            f"Lock file has too few lines ({len(lines)}, expected at least {MIN_RECORD_LINES})"
        )

    pid_text = lines[3].strip()
    if not _PID_RE.fullmatch(pid_text):
        raise MalformedRecordError(f"Invalid PID in lock file: {lines[3]!r}")

    try:
        process_start_time = parse_timestamp(lines[4])
    except ValueError as e:
        raise MalformedRecordError(f"Invalid process start time in lock file: {lines[4]!r}") from e

    lock_time = None
    if len(lines) > MIN_RECORD_LINES and lines[5].strip():
        try:
            lock_time = parse_timestamp(lines[5])
        except ValueError as e:
            raise MalformedRecordError(f"Invalid lock time in lock file: {lines[5]!r}") from e

    return LockRecord(
        display_name=lines[0],
        login_name=lines[1],
        host_name=lines[2],
        pid=int(pid_text),
        process_start_time=process_start_time,
        lock_time=lock_time,
    )
