"""
Quote Sync CLI - Command Line Interface.

Local-first quote collection that syncs with a remote collection.

Commands:
    add         Add a quote (marked for sync)
    edit        Edit a quote (marked for sync)
    list        List quotes, optionally by category
    random      Show a random quote
    categories  List categories
    import      Import quotes from a JSON file
    export      Export quotes to a JSON file
    sync        Run one push/pull/merge cycle now
    watch       Sync now and then periodically
    conflicts   List conflicts awaiting review
    restore     Restore the local copy of a conflict
    dismiss     Dismiss a conflict, keeping the server copy
    status      Show local state
    config      Manage configuration
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from quote_sync import __version__
from quote_sync.config import Settings, load_settings
from quote_sync.connectors.remote import create_remote_client
from quote_sync.core.engine import SyncEngine, SyncOutcome, SyncReport
from quote_sync.core.state import LocalState
from quote_sync.core.models import parse_import
from quote_sync.errors import ParseError, ValidationError
from quote_sync.utils.display import (
    console,
    print_conflicts,
    print_error,
    print_info,
    print_quote,
    print_records,
    print_state_summary,
    print_status,
    print_success,
    print_sync_report,
    print_warning,
)
from quote_sync.utils.logger import setup_logging


# Create the Typer app
app = typer.Typer(
    name="quote-sync",
    help="Local-first quote collection with remote sync.",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]quote-sync[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (TOML or JSON).",
        exists=True,
        dir_okay=False,
    ),
    state_dir: Optional[Path] = typer.Option(
        None,
        "--state-dir",
        envvar="QUOTE_SYNC_STATE_DIR",
        help="Directory holding local state (overrides config).",
        file_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Debug logging.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Quote Sync - local-first quotes with remote synchronization."""
    try:
        settings = _build_settings(config_file=config_file, state_dir=state_dir)
    except (ValueError, FileNotFoundError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    setup_logging(
        level="DEBUG" if verbose else settings.logging.level,
        log_file=settings.logging.file,
        format_style=settings.logging.format,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    ctx.obj = settings


# =============================================================================
# Local commands
# =============================================================================
@app.command()
def add(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Quote text."),
    category: str = typer.Argument(..., help="Quote category."),
) -> None:
    """Add a quote. It is pushed on the next sync."""
    state = _open_state(ctx)
    try:
        record = state.add_record(text, category)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Added {record.id} ({escape(record.category)})")


@app.command()
def edit(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Local record id."),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="New quote text."),
    category: Optional[str] = typer.Option(None, "--category", "-k", help="New category."),
) -> None:
    """Edit a quote. The change is pushed on the next sync."""
    if text is None and category is None:
        print_error("Nothing to change: pass --text and/or --category.")
        raise typer.Exit(1)

    state = _open_state(ctx)
    try:
        record = state.edit_record(record_id, text=text, category=category)
    except KeyError:
        print_error(f"No quote with id {record_id}")
        raise typer.Exit(1)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Updated {record.id}")


@app.command("list")
def list_records(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-k",
        help="Only quotes in this category (case-insensitive).",
    ),
) -> None:
    """List quotes with their sync status."""
    state = _open_state(ctx)
    print_records(state.store.filter_by_category(category), state.dirty.all())


@app.command()
def random(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-k",
        help="Pick from this category only.",
    ),
) -> None:
    """Show a random quote."""
    state = _open_state(ctx)
    record = state.store.pick_random(category)
    if record is None:
        print_info("No quotes for this category yet. Add one with `quote-sync add`.")
        return
    print_quote(record)


@app.command()
def categories(ctx: typer.Context) -> None:
    """List categories."""
    state = _open_state(ctx)
    table = Table(title="Categories", border_style="magenta")
    table.add_column("Category", style="magenta")
    table.add_column("Quotes", justify="right")
    for name in state.store.categories():
        table.add_row(escape(name), str(len(state.store.filter_by_category(name))))
    console.print(table)


@app.command("import")
def import_file(
    ctx: typer.Context,
    path: Path = typer.Argument(
        ...,
        help="JSON file holding a list of {text, category} items.",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """Import quotes from a JSON file."""
    state = _open_state(ctx)
    try:
        records = state.import_records(parse_import(path.read_text(encoding="utf-8")))
    except (ParseError, ValidationError) as e:
        print_error(f"Import failed: {e}")
        raise typer.Exit(1)
    print_success(f"Imported {len(records)} quotes successfully!")


@app.command()
def export(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("quotes.json"), help="Output file.", dir_okay=False),
) -> None:
    """Export quotes to a JSON file."""
    state = _open_state(ctx)
    items = state.export_records()
    try:
        path.write_text(json.dumps(items, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        print_error(f"Export failed: {e}")
        raise typer.Exit(1)
    print_success(f"Exported {len(items)} quotes to {path}")


# =============================================================================
# Sync commands
# =============================================================================
@app.command()
def sync(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        min=1,
        help="Maximum remote items to pull (overrides config).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output.",
    ),
) -> None:
    """
    Push local changes, pull the remote collection and merge.

    Example:
        quote-sync sync --limit 20
    """
    settings: Settings = ctx.obj
    state = _open_state(ctx)

    async def _run() -> SyncReport:
        async with create_remote_client(settings) as remote:
            engine = SyncEngine(
                state,
                remote,
                on_status=None if quiet else print_status,
                pull_limit=limit,
                interval_seconds=settings.sync.interval_seconds,
            )
            return await engine.run_sync_cycle()

    if quiet:
        report = asyncio.run(_run())
    else:
        with console.status("[bold blue]Syncing with server..."):
            report = asyncio.run(_run())
        console.print()
        print_sync_report(report)

    if report.outcome == SyncOutcome.FAILED:
        raise typer.Exit(1)


@app.command()
def watch(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        "-i",
        min=0.1,
        help="Seconds between cycles (overrides config).",
    ),
    cycles: Optional[int] = typer.Option(
        None,
        "--cycles",
        "-n",
        min=1,
        help="Stop after this many cycles (default: run until Ctrl-C).",
    ),
) -> None:
    """Sync now, then every interval until interrupted."""
    settings: Settings = ctx.obj
    state = _open_state(ctx)
    period = interval or settings.sync.interval_seconds

    async def _run() -> None:
        async with create_remote_client(settings) as remote:
            engine = SyncEngine(
                state,
                remote,
                on_status=print_status,
                interval_seconds=period,
            )
            await engine.run_forever(max_cycles=cycles)

    print_info(f"Syncing every {period:g}s against {settings.remote.collection_url}")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print_warning("Stopped.")


# =============================================================================
# Conflict commands
# =============================================================================
@app.command()
def conflicts(ctx: typer.Context) -> None:
    """List conflicts awaiting review."""
    state = _open_state(ctx)
    print_conflicts(state.conflicts.list())


@app.command()
def restore(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="Conflict number from `quote-sync conflicts`."),
) -> None:
    """Restore the local copy of a conflict; it is pushed on the next sync."""
    state = _open_state(ctx)
    if state.conflicts.get(index) is None:
        print_warning(f"No conflict #{index}")
        return
    record = state.conflicts.restore(index)
    if record is None:
        print_warning(f"Conflict #{index} referred to a missing quote and was dropped")
        return
    print_success(f"Restored local copy of {record.id}")


@app.command()
def dismiss(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="Conflict number from `quote-sync conflicts`."),
) -> None:
    """Dismiss a conflict, keeping the server copy."""
    state = _open_state(ctx)
    if state.conflicts.dismiss(index) is None:
        print_warning(f"No conflict #{index}")
        return
    print_success(f"Dismissed conflict #{index}")


# =============================================================================
# STATUS / CONFIG
# =============================================================================
@app.command()
def status(ctx: typer.Context) -> None:
    """Show local state and sync status."""
    state = _open_state(ctx)
    print_state_summary(state.summary())


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration.",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        help="Write a config file with the current settings.",
    ),
    output: Path = typer.Option(
        Path("quote-sync.toml"),
        "--output",
        "-o",
        help="Output path for config file.",
    ),
) -> None:
    """Manage configuration."""
    settings: Settings = ctx.obj

    if init:
        settings.to_file(output)
        print_success(f"Generated config file: {output}")
        return

    if show:
        table = Table(title="Current Configuration", border_style="cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")

        table.add_row("Remote collection", settings.remote.collection_url)
        table.add_row("Pull limit", str(settings.remote.pull_limit))
        table.add_row("Timeout", f"{settings.remote.timeout_seconds:g}s")
        table.add_row("Retries", str(settings.remote.max_retries))
        table.add_row("Sync interval", f"{settings.sync.interval_seconds:g}s")
        table.add_row("State directory", str(settings.sync.state_dir))
        table.add_row("Log level", settings.logging.level)

        console.print(table)
        return

    console.print("Use --show to view config or --init to create config file.")


# =============================================================================
# Helper Functions
# =============================================================================
def _build_settings(
    config_file: Path | None = None,
    state_dir: Path | None = None,
) -> Settings:
    """Build settings from config file and overrides."""
    settings = load_settings(config_file) if config_file else Settings()
    if state_dir is not None:
        settings.sync.state_dir = state_dir
    return settings


def _open_state(ctx: typer.Context) -> LocalState:
    settings: Settings = ctx.obj
    return LocalState.open(settings.state_dir)


if __name__ == "__main__":
    app()
