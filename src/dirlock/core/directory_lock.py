"""Directory lock for cross-process coordination.

Marks a directory as in use by writing a ``.lock`` file into it. The lock
file records who holds the lock (user, host, PID and process start time)
so that other processes can tell an active lock from one left behind by a
crashed process.

The lock is advisory. There is no atomicity between status() and
acquire(): two processes can both observe an unlocked directory and both
acquire it, in which case the last writer wins. Callers are expected to
check status() first; acquire() itself always overwrites.
"""

import contextlib
import logging
import os
from pathlib import Path
from types import TracebackType

from ..config import LockConfig
from ..errors import (
    AlreadyLockedError,
    DirectoryLockError,
    LockIOError,
    LockOwnershipError,
    TargetMissingError,
)
from ..identity import current_identity
from ..liveness import LivenessOracle, default_oracle
from ..models import Identity, LockRecord, LockStatus
from .codec import decode_record, encode_record

logger = logging.getLogger(__name__)

LOCK_FILE = ".lock"


def lock_file_path(directory: Path) -> Path:
    """Get path to the lock file of a directory."""
    return directory / LOCK_FILE


def evaluate_staleness(
    record: LockRecord,
    identity: Identity,
    oracle: LivenessOracle,
    tolerance_seconds: float = 2.0,
) -> LockStatus:
    """Decide whether a lock record belongs to a live holder.

    Args:
        record: Record read from the lock file
        identity: Identity of the process asking
        oracle: Process introspection backend
        tolerance_seconds: Allowed start time skew between record and process

    Returns:
        LockStatus.LOCKED if the holder may still be alive, LockStatus.STALE
        if it is gone

    Raises:
        LivenessQueryError: If the holder's state cannot be determined
    """
    # Processes of other users or hosts cannot be inspected from here
    if record.login_name != identity.login_name or record.host_name != identity.host_name:
        return LockStatus.LOCKED

    if not oracle.is_process_alive(record.pid):
        return LockStatus.STALE

    started = oracle.process_start_time(record.pid)
    if started is None:
        # Exited between the two queries
        return LockStatus.STALE

    skew = abs((started - record.process_start_time).total_seconds())
    if skew <= tolerance_seconds:
        return LockStatus.LOCKED

    logger.debug(
        f"PID {record.pid} was reused: lock holder started at "
        f"{record.process_start_time.isoformat()}, current process at {started.isoformat()}"
    )
    return LockStatus.STALE


class DirectoryLock:
    """Lock handle bound to one directory.

    The handle remembers whether it acquired the lock itself and only
    removes the lock file on teardown in that case. Use it as a context
    manager, or call close() when done; a handle that still owns its lock
    when garbage collected releases it too.

    Not thread-safe: callers sharing a handle between threads must
    serialize access.

    Example:
        >>> with DirectoryLock(Path("workspace")) as lock:
        ...     lock.status()
        <LockStatus.LOCKED: 'locked'>
    """

    def __init__(
        self,
        directory: Path | str | None = None,
        *,
        identity: Identity | None = None,
        oracle: LivenessOracle | None = None,
        config: LockConfig | None = None,
    ) -> None:
        self._owns_lock = False
        self._directory: Path | None = None
        self._config = config or LockConfig()
        self._oracle = oracle or default_oracle(self._config.liveness_backend)
        self._identity = identity
        if directory is not None:
            self.bind(directory)

    def __repr__(self) -> str:
        return f"DirectoryLock({str(self._directory)!r}, owns_lock={self._owns_lock})"

    @property
    def directory(self) -> Path | None:
        """Directory this handle is bound to."""
        return self._directory

    @property
    def lock_file_path(self) -> Path | None:
        """Path of the lock file inside the bound directory."""
        if self._directory is None:
            return None
        return lock_file_path(self._directory)

    @property
    def owns_lock(self) -> bool:
        """True between a successful acquire() and release() on this handle."""
        return self._owns_lock

    @property
    def oracle(self) -> LivenessOracle:
        """Process introspection backend used for status checks."""
        return self._oracle

    @property
    def identity(self) -> Identity:
        """Identity written into lock files, resolved on first use."""
        if self._identity is None:
            self._identity = current_identity(self._oracle)
        return self._identity

    def bind(self, directory: Path | str) -> None:
        """Bind the handle to a directory. Does no I/O.

        Raises:
            LockOwnershipError: If this handle currently owns a lock
        """
        if self._owns_lock:
            raise LockOwnershipError(
                f"Cannot rebind lock on {self._directory} while it is held"
            )
        self._directory = Path(directory).absolute()

    def _require_directory(self) -> Path:
        if self._directory is None:
            raise TargetMissingError("No directory to lock has been set")
        if not self._directory.is_dir():
            raise TargetMissingError(f'The directory "{self._directory}" does not exist')
        return self._directory

    def read_record(self) -> LockRecord | None:
        """Read the lock file of the bound directory.

        Returns:
            The current lock record, or None if the directory is not locked

        Raises:
            TargetMissingError: If the directory does not exist
            MalformedRecordError: If the lock file cannot be parsed
            LockIOError: If the lock file cannot be read
        """
        path = lock_file_path(self._require_directory())
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LockIOError(f'Could not read lock file "{path}": {e}') from e
        return decode_record(data)

    def status(self) -> LockStatus:
        """Get the current lock status of the bound directory.

        Raises:
            TargetMissingError: If the directory does not exist
            MalformedRecordError: If the lock file cannot be parsed
            LockIOError: If the lock file cannot be read
            LivenessQueryError: If the holder's state cannot be determined
        """
        record = self.read_record()
        if record is None:
            return LockStatus.UNLOCKED
        return self.status_of(record)

    def status_of(self, record: LockRecord) -> LockStatus:
        """Evaluate a lock record against this handle's identity and oracle."""
        return evaluate_staleness(
            record,
            self.identity,
            self._oracle,
            self._config.start_time_tolerance_seconds,
        )

    def acquire(self) -> LockRecord:
        """Write a fresh lock file for this process, replacing any existing one.

        Never blocks and never consults the previous holder.

        Returns:
            The record written to the lock file

        Raises:
            TargetMissingError: If the directory does not exist
            LockIOError: If the lock file cannot be written
        """
        directory = self._require_directory()
        path = lock_file_path(directory)
        record = LockRecord.for_identity(self.identity)

        # Write aside and rename so readers never see a partial record
        tmp_path = directory / f"{LOCK_FILE}.{os.getpid()}.tmp"
        try:
            tmp_path.write_bytes(encode_record(record))
            os.replace(tmp_path, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise LockIOError(f'Could not write lock file "{path}": {e}') from e

        self._owns_lock = True
        logger.debug(f"Locked {directory} (PID {record.pid})")
        return record

    def release(self) -> None:
        """Remove the lock file. Removing an absent lock file is not an error.

        Raises:
            TargetMissingError: If the directory does not exist
            LockIOError: If the lock file cannot be removed
        """
        path = lock_file_path(self._require_directory())
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise LockIOError(f'Could not remove lock file "{path}": {e}') from e
        self._owns_lock = False
        logger.debug(f"Unlocked {self._directory}")

    def close(self) -> None:
        """Release the lock if this handle owns it, logging instead of raising."""
        if not self._owns_lock:
            return
        try:
            self.release()
        except DirectoryLockError as e:
            logger.error(f"Could not remove lock file: {e}")

    def __enter__(self) -> "DirectoryLock":
        if not self._owns_lock:
            self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            if self._owns_lock:
                self.release()
        else:
            # Don't mask the exception that is already propagating
            self.close()

    def __del__(self) -> None:
        self.close()


def open_or_fail(
    directory: Path | str,
    *,
    identity: Identity | None = None,
    oracle: LivenessOracle | None = None,
    config: LockConfig | None = None,
) -> DirectoryLock:
    """Lock a directory unless another live process holds it.

    A stale lock left by a crashed process is taken over with a warning.

    Args:
        directory: Directory to lock
        identity: Identity to lock as (defaults to the current process)
        oracle: Process introspection backend
        config: Lock settings

    Returns:
        Handle owning the lock

    Raises:
        AlreadyLockedError: If the directory is locked by a live process
        TargetMissingError: If the directory does not exist
        MalformedRecordError: If the existing lock file cannot be parsed
        LockIOError: If the lock file cannot be read or written
        LivenessQueryError: If the holder's state cannot be determined
    """
    lock = DirectoryLock(directory, identity=identity, oracle=oracle, config=config)
    record = lock.read_record()
    if record is not None:
        if lock.status_of(record) == LockStatus.LOCKED:
            raise AlreadyLockedError(
                f'The directory "{lock.directory}" is already opened by another '
                f"application instance or user ({record.login_name}@{record.host_name}, "
                f"PID {record.pid})",
                record=record,
            )
        logger.warning(
            f"There was a stale lock on {lock.directory} "
            f"(PID {record.pid} on {record.host_name})"
        )
    lock.acquire()
    return lock
