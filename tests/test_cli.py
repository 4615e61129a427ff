"""CLI integration tests for dirlock."""

import json
import os
from pathlib import Path

from typer.testing import CliRunner

from conftest import START_TIME
from dirlock.cli import app
from dirlock.core import DirectoryLock, encode_record
from dirlock.identity import current_host_name, current_login_name
from dirlock.models import LockRecord

IMPROBABLE_PID = 9999999999


def write_lock_file(directory: Path, **overrides) -> None:
    """Write a lock file for the current user and host."""
    fields = {
        "login_name": current_login_name(),
        "host_name": current_host_name(),
        "pid": IMPROBABLE_PID,
        "process_start_time": START_TIME,
    }
    fields.update(overrides)
    (directory / ".lock").write_bytes(encode_record(LockRecord(**fields)))


class TestVersionCommand:
    """Tests for --version flag."""

    def test_version_shows_version(self, runner: CliRunner) -> None:
        """--version should display version string."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "dirlock" in result.stdout
        assert "0.1.0" in result.stdout

    def test_version_short_flag(self, runner: CliRunner) -> None:
        """-V should also display version."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert "dirlock" in result.stdout


class TestHelpCommand:
    """Tests for --help flag."""

    def test_help_shows_commands(self, runner: CliRunner) -> None:
        """--help should list all available commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "status" in result.stdout
        assert "show" in result.stdout
        assert "clear" in result.stdout
        assert "init-config" in result.stdout

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        """Running with no args should show help."""
        result = runner.invoke(app, [])
        assert "Usage" in result.output


class TestStatusCommand:
    """Tests for dirlock status."""

    def test_unlocked(self, runner: CliRunner, lock_dir: Path) -> None:
        """Free directory exits 0."""
        result = runner.invoke(app, ["--no-color", "status", str(lock_dir)])
        assert result.exit_code == 0
        assert "unlocked" in result.output

    def test_locked(self, runner: CliRunner, lock_dir: Path) -> None:
        """Directory held by a live process exits 10."""
        lock = DirectoryLock(lock_dir)
        lock.acquire()
        try:
            result = runner.invoke(app, ["--no-color", "status", str(lock_dir)])
        finally:
            lock.release()
        assert result.exit_code == 10
        assert str(os.getpid()) in result.output

    def test_stale(self, runner: CliRunner, lock_dir: Path) -> None:
        """Lock of a dead process exits 11."""
        write_lock_file(lock_dir)
        result = runner.invoke(app, ["--no-color", "status", str(lock_dir)])
        assert result.exit_code == 11
        assert "stale" in result.output

    def test_missing_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        """Missing directory exits 3."""
        result = runner.invoke(app, ["--no-color", "status", str(tmp_path / "ghost")])
        assert result.exit_code == 3
        assert "does not exist" in result.output

    def test_malformed(self, runner: CliRunner, lock_dir: Path) -> None:
        """Corrupted lock file exits 4."""
        (lock_dir / ".lock").write_text("garbage")
        result = runner.invoke(app, ["--no-color", "status", str(lock_dir)])
        assert result.exit_code == 4
        assert "too few lines" in result.output

    def test_json(self, runner: CliRunner, lock_dir: Path) -> None:
        """JSON output includes status and holder."""
        write_lock_file(lock_dir, login_name="someone-else")
        result = runner.invoke(app, ["--json", "status", str(lock_dir)])
        assert result.exit_code == 10
        data = json.loads(result.stdout)
        assert data["status"] == "locked"
        assert data["record"]["login_name"] == "someone-else"
        assert data["record"]["pid"] == IMPROBABLE_PID

    def test_json_unlocked(self, runner: CliRunner, lock_dir: Path) -> None:
        """JSON output for a free directory has no record."""
        result = runner.invoke(app, ["--json", "status", str(lock_dir)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["status"] == "unlocked"
        assert data["record"] is None

    def test_json_error(self, runner: CliRunner, tmp_path: Path) -> None:
        """Errors are reported as JSON with their kind."""
        result = runner.invoke(app, ["--json", "status", str(tmp_path / "ghost")])
        assert result.exit_code == 3
        data = json.loads(result.stdout)
        assert data["kind"] == "TargetMissingError"


class TestShowCommand:
    """Tests for dirlock show."""

    def test_not_locked(self, runner: CliRunner, lock_dir: Path) -> None:
        """A free directory has nothing to show."""
        result = runner.invoke(app, ["--no-color", "show", str(lock_dir)])
        assert result.exit_code == 0
        assert "not locked" in result.output

    def test_live_holder(self, runner: CliRunner, lock_dir: Path) -> None:
        """The holder is this process, which is running."""
        lock = DirectoryLock(lock_dir)
        lock.acquire()
        try:
            result = runner.invoke(app, ["--json", "show", str(lock_dir)])
        finally:
            lock.release()
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["record"]["pid"] == os.getpid()
        assert data["running"] is True
        assert data["process_name"]

    def test_dead_holder(self, runner: CliRunner, lock_dir: Path) -> None:
        """A dead holder is reported as not running."""
        write_lock_file(lock_dir)
        result = runner.invoke(app, ["--no-color", "show", str(lock_dir)])
        assert result.exit_code == 0
        assert "running" in result.output
        assert "no" in result.output

    def test_remote_holder(self, runner: CliRunner, lock_dir: Path) -> None:
        """Processes on other hosts can't be inspected."""
        write_lock_file(lock_dir, host_name="elsewhere.example")
        result = runner.invoke(app, ["--json", "show", str(lock_dir)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["running"] is None
        assert data["process_name"] is None


    def test_other_user_holder(self, runner: CliRunner, lock_dir: Path) -> None:
        """Processes of other users aren't inspected, even on this host."""
        write_lock_file(lock_dir, login_name="someone-else", pid=os.getpid())
        result = runner.invoke(app, ["--json", "show", str(lock_dir)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["running"] is None
        assert data["process_name"] is None


class TestClearCommand:
    """Tests for dirlock clear."""

    def test_clear_stale(self, runner: CliRunner, lock_dir: Path) -> None:
        """Stale lock files are removed."""
        write_lock_file(lock_dir)
        result = runner.invoke(app, ["--no-color", "clear", str(lock_dir)])
        assert result.exit_code == 0
        assert not (lock_dir / ".lock").exists()

    def test_clear_malformed(self, runner: CliRunner, lock_dir: Path) -> None:
        """Corrupted lock files are removed."""
        (lock_dir / ".lock").write_text("garbage")
        result = runner.invoke(app, ["--no-color", "clear", str(lock_dir)])
        assert result.exit_code == 0
        assert "corrupted" in result.output
        assert not (lock_dir / ".lock").exists()

    def test_refuses_live_lock(self, runner: CliRunner, lock_dir: Path) -> None:
        """Live locks are kept without --force."""
        write_lock_file(lock_dir, login_name="someone-else")
        result = runner.invoke(app, ["--no-color", "clear", str(lock_dir)])
        assert result.exit_code == 10
        assert "--force" in result.output
        assert (lock_dir / ".lock").exists()

    def test_force_removes_live_lock(self, runner: CliRunner, lock_dir: Path) -> None:
        """--force removes live locks too."""
        write_lock_file(lock_dir, login_name="someone-else")
        result = runner.invoke(app, ["--no-color", "clear", "--force", str(lock_dir)])
        assert result.exit_code == 0
        assert not (lock_dir / ".lock").exists()

    def test_not_locked(self, runner: CliRunner, lock_dir: Path) -> None:
        """Nothing to clear on a free directory."""
        result = runner.invoke(app, ["--json", "clear", str(lock_dir)])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["removed"] is False


class TestInitConfigCommand:
    """Tests for dirlock init-config."""

    def test_writes_template(self, runner: CliRunner, tmp_path: Path) -> None:
        """A config template is written."""
        path = tmp_path / "dirlock.toml"
        result = runner.invoke(app, ["--no-color", "init-config", str(path)])
        assert result.exit_code == 0
        assert "[lock]" in path.read_text()

    def test_refuses_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        """Existing files are kept without --force."""
        path = tmp_path / "dirlock.toml"
        path.write_text("# mine\n")
        result = runner.invoke(app, ["--no-color", "init-config", str(path)])
        assert result.exit_code == 1
        assert path.read_text() == "# mine\n"

    def test_force_overwrites(self, runner: CliRunner, tmp_path: Path) -> None:
        """--force replaces an existing file."""
        path = tmp_path / "dirlock.toml"
        path.write_text("# mine\n")
        result = runner.invoke(app, ["--no-color", "init-config", "--force", str(path)])
        assert result.exit_code == 0
        assert "[lock]" in path.read_text()


class TestConfigOption:
    """Tests for the global --config option."""

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path, lock_dir: Path) -> None:
        """Invalid config files abort with exit code 1."""
        path = tmp_path / "bad.toml"
        path.write_text("[lock]\nstart_time_tolerance_seconds = -1\n")
        result = runner.invoke(
            app, ["--no-color", "--config", str(path), "status", str(lock_dir)]
        )
        assert result.exit_code == 1
        assert "Invalid config" in result.output

    def test_config_applies_tolerance(
        self, runner: CliRunner, tmp_path: Path, lock_dir: Path
    ) -> None:
        """The configured tolerance is used for status checks."""
        path = tmp_path / "dirlock.toml"
        path.write_text("[lock]\nstart_time_tolerance_seconds = 1e9\n")
        # Our own PID with a start time years off: stale by default, live with a huge tolerance
        write_lock_file(lock_dir, pid=os.getpid())
        result = runner.invoke(app, ["--config", str(path), "--json", "status", str(lock_dir)])
        assert json.loads(result.stdout)["status"] == "locked"
        result = runner.invoke(app, ["--json", "status", str(lock_dir)])
        assert json.loads(result.stdout)["status"] == "stale"
