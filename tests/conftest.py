"""Shared test fixtures for dirlock tests."""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dirlock.errors import LivenessQueryError
from dirlock.liveness import LivenessOracle
from dirlock.models import Identity

START_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


class FakeOracle(LivenessOracle):
    """In-memory process table.

    Maps PID to start time. PIDs listed in ``failing`` raise
    LivenessQueryError for every query.
    """

    def __init__(
        self,
        processes: dict[int, datetime] | None = None,
        failing: set[int] | None = None,
    ) -> None:
        self.processes = dict(processes or {})
        self.failing = set(failing or ())
        self.names: dict[int, str] = {}

    def _check(self, pid: int) -> None:
        if pid in self.failing:
            raise LivenessQueryError(f"Permission denied for process {pid}")

    def is_process_alive(self, pid: int) -> bool:
        self._check(pid)
        return pid in self.processes

    def process_start_time(self, pid: int) -> datetime | None:
        self._check(pid)
        return self.processes.get(pid)

    def process_name(self, pid: int) -> str | None:
        self._check(pid)
        if pid not in self.processes:
            return None
        return self.names.get(pid, "python")


def make_identity(
    login_name: str = "alice",
    host_name: str = "workstation",
    pid: int = 4242,
    process_start_time: datetime = START_TIME,
    display_name: str = "Alice Example",
) -> Identity:
    """Create a fabricated identity."""
    return Identity(
        display_name=display_name,
        login_name=login_name,
        host_name=host_name,
        pid=pid,
        process_start_time=process_start_time,
    )


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner with a console wide enough to avoid wrapping."""
    return CliRunner(env={"COLUMNS": "400"})


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    """Create an empty directory to lock."""
    d = tmp_path / "workspace"
    d.mkdir()
    return d


@pytest.fixture
def identity() -> Identity:
    """Fabricated identity of the process under test."""
    return make_identity()


@pytest.fixture
def oracle(identity: Identity) -> FakeOracle:
    """Fake process table containing only the process under test."""
    return FakeOracle({identity.pid: identity.process_start_time})
