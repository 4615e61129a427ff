"""Output formatting for the dirlock CLI."""

import json
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.table import Table

from .core import format_timestamp
from .models import LockRecord, LockStatus

STATUS_STYLES = {
    LockStatus.UNLOCKED: "green",
    LockStatus.LOCKED: "red",
    LockStatus.STALE: "yellow",
}


def record_to_dict(record: LockRecord) -> dict[str, Any]:
    """Convert a lock record to JSON-friendly data."""
    return {
        "display_name": record.display_name,
        "login_name": record.login_name,
        "host_name": record.host_name,
        "pid": record.pid,
        "process_start_time": format_timestamp(record.process_start_time),
        "lock_time": format_timestamp(record.lock_time) if record.lock_time else None,
    }


@dataclass
class OutputContext:
    """Context for output formatting."""

    console: Console
    json_mode: bool = False

    def print(self, message: str, style: str | None = None) -> None:
        """Print message respecting output mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: dict[str, Any]) -> None:
        """Print JSON data."""
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str))

    def result(self, data: dict[str, Any], message: str = "") -> None:
        """Print result in appropriate format."""
        if self.json_mode:
            self.print_json(data)
        elif message:
            self.console.print(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print error in appropriate format."""
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error: {message}[/red]")

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print success message in appropriate format."""
        if self.json_mode:
            self.print_json({"success": message, **(data or {})})
        else:
            self.console.print(f"[green]{message}[/green]")

    def status_line(self, directory: str, status: LockStatus) -> None:
        """Print the colored status of a directory (text mode only)."""
        style = STATUS_STYLES[status]
        self.print(f"[bold]{directory}[/bold]: [{style}]{status.value}[/{style}]")

    def record_table(self, record: LockRecord, extra: dict[str, str] | None = None) -> None:
        """Print a lock record as a two-column table (text mode only)."""
        if self.json_mode:
            return
        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in record_to_dict(record).items():
            table.add_row(key, "" if value is None else str(value))
        for key, value in (extra or {}).items():
            table.add_row(key, value)
        self.console.print(table)


# Global output context (set by cli.py main callback)
_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Get the current output context.

    Returns a default OutputContext if not yet initialized by CLI.
    """
    if _ctx is None:
        return OutputContext(Console())
    return _ctx


def set_output_context(ctx: OutputContext) -> None:
    """Set the global output context. Called by CLI main callback."""
    global _ctx
    _ctx = ctx
