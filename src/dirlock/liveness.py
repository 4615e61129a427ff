"""Process liveness checks.

Answers two questions about a process ID: does a process with this ID
exist right now, and when did it start. The start time is what lets the
directory lock tell its original holder apart from an unrelated process
that was handed the same PID later.

"Not running" is always an explicit answer (``False`` / ``None``).
Anything that prevents a definite answer raises LivenessQueryError.
"""

import logging
import os
import sys
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

import psutil

from .errors import LivenessQueryError

logger = logging.getLogger(__name__)

MAX_PID = 2**32 - 1
LIVENESS_BACKENDS = ("auto", "psutil", "procfs")


def _is_valid_pid(pid: int) -> bool:
    """Return True if pid is in the range any supported OS hands out."""
    return 0 < pid <= MAX_PID


class LivenessOracle(ABC):
    """Uniform process introspection contract used by the staleness check."""

    @abstractmethod
    def is_process_alive(self, pid: int) -> bool:
        """Return True if a (non-zombie) process with this PID exists.

        Raises:
            LivenessQueryError: If existence cannot be determined.
        """

    @abstractmethod
    def process_start_time(self, pid: int) -> datetime | None:
        """Return the UTC start time of the process, or None if not running.

        Raises:
            LivenessQueryError: If the start time cannot be determined.
        """

    @abstractmethod
    def process_name(self, pid: int) -> str | None:
        """Return the executable name of the process, or None if not running.

        Raises:
            LivenessQueryError: If the name cannot be determined.
        """


class PsutilLivenessOracle(LivenessOracle):
    """Cross-platform oracle backed by psutil."""

    def _process(self, pid: int) -> psutil.Process | None:
        if not _is_valid_pid(pid):
            return None
        try:
            proc = psutil.Process(pid)
            if proc.status() == psutil.STATUS_ZOMBIE:
                return None
            return proc
        except psutil.NoSuchProcess:
            # Includes ZombieProcess
            return None
        except psutil.Error as e:
            raise LivenessQueryError(f"Could not query process {pid}: {e}") from e

    def is_process_alive(self, pid: int) -> bool:
        return self._process(pid) is not None

    def process_start_time(self, pid: int) -> datetime | None:
        proc = self._process(pid)
        if proc is None:
            return None
        try:
            created = proc.create_time()
        except psutil.NoSuchProcess:
            return None
        except psutil.Error as e:
            raise LivenessQueryError(f"Could not query start time of process {pid}: {e}") from e
        return datetime.fromtimestamp(created, UTC)

    def process_name(self, pid: int) -> str | None:
        proc = self._process(pid)
        if proc is None:
            return None
        try:
            name = proc.name()
        except psutil.NoSuchProcess:
            return None
        except psutil.Error as e:
            raise LivenessQueryError(f"Could not query name of process {pid}: {e}") from e
        if not name:
            raise LivenessQueryError(f"Could not determine the name of process {pid}")
        return name


class ProcfsLivenessOracle(LivenessOracle):
    """Linux oracle using signal 0 probing and the /proc filesystem."""

    DELETED_SUFFIX = " (deleted)"

    def __init__(self, proc_root: Path = Path("/proc")) -> None:
        self.proc_root = proc_root

    def _require_procfs(self) -> None:
        if not (self.proc_root / "version").is_file():
            raise LivenessQueryError(f"Could not find {self.proc_root / 'version'}")

    def _read_stat_fields(self, pid: int) -> list[str] | None:
        """Return the fields of /proc/<pid>/stat after the command name."""
        try:
            content = (self.proc_root / str(pid) / "stat").read_text()
        except (FileNotFoundError, ProcessLookupError):
            return None
        except OSError as e:
            raise LivenessQueryError(f"Could not read stat of process {pid}: {e}") from e
        # comm may contain spaces and parentheses; it ends at the last ')'
        _, sep, rest = content.rpartition(")")
        if not sep:
            raise LivenessQueryError(f"Unexpected stat format for process {pid}")
        return rest.split()

    def _boot_time(self) -> float:
        try:
            content = (self.proc_root / "stat").read_text()
        except OSError as e:
            raise LivenessQueryError(f"Could not read {self.proc_root / 'stat'}: {e}") from e
        for line in content.splitlines():
            if line.startswith("btime "):
                return float(line.split()[1])
        raise LivenessQueryError(f"No btime entry in {self.proc_root / 'stat'}")

    def is_process_alive(self, pid: int) -> bool:
        if not _is_valid_pid(pid):
            return False
        try:
            os.kill(pid, 0)  # Signal 0 doesn't kill, just checks
        except (ProcessLookupError, OverflowError):
            # pid_t is signed, so PIDs above 2**31-1 never exist on Linux
            return False
        except PermissionError:
            # Exists, but owned by someone else
            pass
        except OSError as e:
            raise LivenessQueryError(
                f"Could not determine if process {pid} is running: {e}"
            ) from e
        self._require_procfs()
        fields = self._read_stat_fields(pid)
        return fields is not None and fields[0] != "Z"

    def process_start_time(self, pid: int) -> datetime | None:
        if not _is_valid_pid(pid):
            return None
        self._require_procfs()
        fields = self._read_stat_fields(pid)
        if fields is None or fields[0] == "Z":
            return None
        try:
            # Field 22 of stat; fields[0] is field 3 (state)
            start_ticks = int(fields[19])
        except (IndexError, ValueError) as e:
            raise LivenessQueryError(f"Unexpected stat format for process {pid}") from e
        ticks_per_second = os.sysconf("SC_CLK_TCK")
        started = self._boot_time() + start_ticks / ticks_per_second
        return datetime.fromtimestamp(started, UTC)

    def process_name(self, pid: int) -> str | None:
        if not self.is_process_alive(pid):
            return None
        proc_dir = self.proc_root / str(pid)
        try:
            name = Path(os.readlink(proc_dir / "exe")).name
        except FileNotFoundError:
            return None
        except PermissionError:
            # exe is only readable for our own processes; comm is world readable
            try:
                name = (proc_dir / "comm").read_text().strip()
            except FileNotFoundError:
                return None
            except OSError as e:
                raise LivenessQueryError(f"Could not read name of process {pid}: {e}") from e
        except OSError as e:
            raise LivenessQueryError(f"Could not read name of process {pid}: {e}") from e
        name = name.removesuffix(self.DELETED_SUFFIX)
        if not name:
            raise LivenessQueryError(f"Could not determine the name of process {pid}")
        return name


def default_oracle(backend: str = "auto") -> LivenessOracle:
    """Create the liveness oracle for the given backend name.

    Args:
        backend: "auto", "psutil" or "procfs"

    Returns:
        Oracle instance for the current platform

    Raises:
        ValueError: If the backend is unknown or unsupported on this platform
    """
    if backend not in LIVENESS_BACKENDS:
        raise ValueError(f"Unknown liveness backend: {backend}")
    if backend == "procfs":
        if not sys.platform.startswith("linux"):
            raise ValueError(f"The procfs backend is not available on {sys.platform}")
        return ProcfsLivenessOracle()
    return PsutilLivenessOracle()
