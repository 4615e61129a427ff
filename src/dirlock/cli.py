"""dirlock CLI: inspect and manage directory locks."""

from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError

from dirlock import __version__

from .config import DirlockConfig, load_config, write_config_template
from .constants import (
    EXIT_ERROR,
    EXIT_FAILURE,
    EXIT_LOCKED,
    EXIT_MALFORMED,
    EXIT_OK,
    EXIT_STALE,
    EXIT_TARGET_MISSING,
)
from .core import DirectoryLock
from .errors import DirectoryLockError, MalformedRecordError, TargetMissingError
from .logging import configure_logging
from .models import LockStatus
from .output import OutputContext, get_output_context, record_to_dict, set_output_context

STATUS_EXIT_CODES = {
    LockStatus.UNLOCKED: EXIT_OK,
    LockStatus.LOCKED: EXIT_LOCKED,
    LockStatus.STALE: EXIT_STALE,
}


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"dirlock {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="dirlock",
    help="Inspect and manage filesystem directory locks",
    no_args_is_help=True,
)

_config: DirlockConfig | None = None


def get_config() -> DirlockConfig:
    """Get the configuration loaded by the main callback."""
    if _config is None:
        return DirlockConfig()
    return _config


def _exit_with_error(ctx: OutputContext, error: DirectoryLockError) -> NoReturn:
    """Report a lock error and exit with the matching code."""
    if isinstance(error, TargetMissingError):
        code = EXIT_TARGET_MISSING
    elif isinstance(error, MalformedRecordError):
        code = EXIT_MALFORMED
    else:
        code = EXIT_FAILURE
    ctx.error(str(error), {"kind": type(error).__name__})
    raise typer.Exit(code)


def _make_lock(directory: Path) -> DirectoryLock:
    return DirectoryLock(directory, config=get_config().lock)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to $DIRLOCK_CONFIG)",
    ),
) -> None:
    """dirlock - filesystem directory locks."""
    global _config
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    ctx = OutputContext(console=console, json_mode=json_output)
    set_output_context(ctx)

    try:
        _config = load_config(config)
    except (OSError, ValueError, ValidationError) as e:
        ctx.error(f"Invalid config: {e}")
        raise typer.Exit(EXIT_ERROR) from None


# ============================================================================
# dirlock status
# ============================================================================


@app.command()
def status(
    directory: Path = typer.Argument(..., help="Directory to check"),
) -> None:
    """Show the lock status of a directory.

    Exit code 0 means unlocked, 10 locked and 11 stale.
    """
    ctx = get_output_context()
    lock = _make_lock(directory)

    try:
        record = lock.read_record()
        state = LockStatus.UNLOCKED if record is None else lock.status_of(record)
    except DirectoryLockError as e:
        _exit_with_error(ctx, e)

    ctx.status_line(str(lock.directory), state)
    if record is not None:
        ctx.record_table(record)
    ctx.print_json(
        {
            "directory": str(lock.directory),
            "status": state.value,
            "record": record_to_dict(record) if record else None,
        }
    )
    raise typer.Exit(STATUS_EXIT_CODES[state])


# ============================================================================
# dirlock show
# ============================================================================


@app.command()
def show(
    directory: Path = typer.Argument(..., help="Directory whose lock file to show"),
) -> None:
    """Show the lock holder and whether its process is still running."""
    ctx = get_output_context()
    lock = _make_lock(directory)

    try:
        record = lock.read_record()
    except DirectoryLockError as e:
        _exit_with_error(ctx, e)

    if record is None:
        ctx.result(
            {"directory": str(lock.directory), "record": None},
            f"{lock.directory} is not locked",
        )
        return

    # Processes of other users or hosts can't be inspected
    running: bool | None = None
    process_name: str | None = None
    try:
        identity = lock.identity
        if (record.login_name, record.host_name) == (identity.login_name, identity.host_name):
            running = lock.oracle.is_process_alive(record.pid)
            if running:
                process_name = lock.oracle.process_name(record.pid)
    except DirectoryLockError as e:
        _exit_with_error(ctx, e)

    ctx.record_table(
        record,
        extra={
            "running": "unknown" if running is None else ("yes" if running else "no"),
            "process_name": process_name or "",
        },
    )
    ctx.print_json(
        {
            "directory": str(lock.directory),
            "record": record_to_dict(record),
            "running": running,
            "process_name": process_name,
        }
    )


# ============================================================================
# dirlock clear
# ============================================================================


@app.command()
def clear(
    directory: Path = typer.Argument(..., help="Directory to unlock"),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Remove the lock file even if its holder looks alive",
    ),
) -> None:
    """Remove a stale or corrupted lock file."""
    ctx = get_output_context()
    lock = _make_lock(directory)

    try:
        record = lock.read_record()
        state = LockStatus.UNLOCKED if record is None else lock.status_of(record)
    except MalformedRecordError as e:
        ctx.print(f"[yellow]Removing corrupted lock file:[/yellow] {e}")
        state = LockStatus.STALE
    except DirectoryLockError as e:
        _exit_with_error(ctx, e)

    if state == LockStatus.UNLOCKED:
        ctx.result(
            {"directory": str(lock.directory), "removed": False},
            f"{lock.directory} is not locked",
        )
        return

    if state == LockStatus.LOCKED and not force:
        ctx.error(
            "Directory is locked by a live process (use --force to remove anyway)",
            {"directory": str(lock.directory)},
        )
        raise typer.Exit(EXIT_LOCKED)

    try:
        lock.release()
    except DirectoryLockError as e:
        _exit_with_error(ctx, e)

    ctx.success(
        f"Removed lock file {lock.lock_file_path}",
        {"directory": str(lock.directory), "removed": True},
    )


# ============================================================================
# dirlock init-config
# ============================================================================


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("dirlock.toml"), help="Config file to write"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a config file with the default settings."""
    ctx = get_output_context()
    if path.exists() and not force:
        ctx.error(f"Config already exists: {path}")
        raise typer.Exit(EXIT_ERROR)
    write_config_template(path)
    ctx.success(f"Created config template: {path}", {"path": str(path)})


def run() -> None:
    """Entry point for the dirlock console script."""
    app(prog_name="dirlock")


if __name__ == "__main__":
    run()
