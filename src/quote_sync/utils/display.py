"""
Rich Terminal Display Components.

Provides console output for:
- Record and conflict tables
- Sync reports and state summaries
- Status messages from the sync engine
"""

from __future__ import annotations

from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from quote_sync.core.engine import Severity, SyncOutcome, SyncReport
from quote_sync.core.models import ConflictEntry, Record


console = Console()

_SEVERITY_STYLES = {
    Severity.INFO: "blue",
    Severity.SUCCESS: "green",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}


def print_records(records: Iterable[Record], dirty: Iterable[str] = ()) -> None:
    """Print records as a table, flagging unsynced ones."""
    dirty_ids = set(dirty)
    table = Table(title="Quotes", border_style="blue")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Quote")
    table.add_column("Remote", justify="right")
    table.add_column("Sync")

    count = 0
    for record in records:
        count += 1
        table.add_row(
            record.id,
            escape(record.category),
            escape(record.text),
            record.remote_id or "[dim]-[/dim]",
            _sync_badge(record, record.id in dirty_ids),
        )

    if count == 0:
        print_info("No quotes for this category yet. Add one with `quote-sync add`.")
        return
    console.print(table)


def _sync_badge(record: Record, is_dirty: bool) -> str:
    if record.is_pending:
        return "[yellow]pending[/yellow]"
    if is_dirty:
        return "[yellow]modified[/yellow]"
    return "[green]synced[/green]"


def print_quote(record: Record) -> None:
    """Print a single quote."""
    console.print(
        Panel(
            f"“{escape(record.text)}”",
            title=f"[magenta]{escape(record.category)}[/magenta]",
            subtitle=f"[dim]{record.id}[/dim]",
            border_style="cyan",
            padding=(1, 2),
        )
    )


def print_conflicts(entries: list[ConflictEntry]) -> None:
    """Print the conflict log with local and server copies side by side."""
    if not entries:
        print_success("No conflicts awaiting review.")
        return

    table = Table(title="Conflicts", border_style="yellow")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Remote ID", justify="right")
    table.add_column("Local copy")
    table.add_column("Server copy (live)")
    table.add_column("Detected", style="dim")

    for index, entry in enumerate(entries):
        table.add_row(
            str(index),
            entry.remote_id or "-",
            f"[magenta]{escape(entry.local.category)}[/magenta]: {escape(entry.local.text)}",
            f"[magenta]{escape(entry.server.category)}[/magenta]: {escape(entry.server.text)}",
            entry.detected_at,
        )

    console.print(table)


def print_sync_report(report: SyncReport) -> None:
    """Print a summary table after a sync cycle."""
    border = {
        SyncOutcome.SUCCESS: "yellow" if report.has_conflicts else "green",
        SyncOutcome.FAILED: "red",
        SyncOutcome.SKIPPED: "dim",
    }[report.outcome]
    table = Table(title="Sync Summary", border_style=border)

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Outcome", report.outcome.value.upper())
    table.add_row("Duration", f"{report.duration_seconds:.1f}s")
    table.add_row("Pushed", f"{report.pushed:,}")
    table.add_row("Created remotely", f"{report.created:,}")
    table.add_row("Pulled", f"{report.pulled:,}")
    table.add_row("Added locally", f"{report.added:,}")
    table.add_row("Updated", f"{report.updated:,}")
    table.add_row("Confirmed", f"{report.confirmed:,}")
    table.add_row("Conflicts", f"{report.conflicts:,}")
    if report.error:
        table.add_row("Error", f"[red]{escape(report.error)}[/red]")

    console.print(table)


def print_state_summary(summary: dict[str, Any]) -> None:
    """Print local state counts."""
    table = Table(title="Local State", border_style="blue")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("State directory", summary.get("state_dir", ""))
    table.add_row("Quotes", f"{summary.get('records', 0):,}")
    table.add_row("Categories", f"{summary.get('categories', 0):,}")
    table.add_row("Pending creation", f"{summary.get('pending_creation', 0):,}")
    table.add_row("Modified (dirty)", f"{summary.get('dirty', 0):,}")
    table.add_row("Conflicts", f"{summary.get('conflicts', 0):,}")
    table.add_row("Last sync", summary.get("last_sync") or "[dim]never[/dim]")

    console.print(table)


def print_status(message: str, severity: Severity, has_conflicts: bool = False) -> None:
    """Status callback for the sync engine."""
    style = _SEVERITY_STYLES.get(severity, "white")
    suffix = "  [dim](run `quote-sync conflicts` to review)[/dim]" if has_conflicts else ""
    console.print(f"[{style} bold]●[/{style} bold] {escape(message)}{suffix}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red bold]Error:[/red bold] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green bold]✓[/green bold] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow bold]⚠[/yellow bold] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")
