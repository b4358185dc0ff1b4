"""
Command-line interface for the CT STH Monitor.

This module provides the main CLI entry points using Click.

Commands:
- run: Monitor the configured Logs until interrupted
- check: Run a single fetch-check-store cycle for one Log
- sths: Show recently stored STHs
- db-init: Initialize database
- db-stats: Show database statistics

Example:
    $ ct-sth-monitor --help
    $ ct-sth-monitor run --config config/local.toml
    $ ct-sth-monitor run --mock --dry-run
    $ ct-sth-monitor sths --log argon --limit 5
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ct_sth_monitor import __version__
from ct_sth_monitor.config import LogSettings, Settings, get_settings, load_settings
from ct_sth_monitor.models import CycleOutcome, SchedulerStats
from ct_sth_monitor.monitor import LogMonitor, build_log_monitor, monitor_logs
from ct_sth_monitor.storage import EchoStorage, SQLiteStorage
from ct_sth_monitor.utils.logging import get_logger, setup_logging
from ct_sth_monitor.utils.time import format_age, ms_to_datetime

console = Console()

MOCK_LOG_NAME = "mock"
MOCK_PERIOD_SECONDS = 5.0


@click.group()
@click.version_option(version=__version__, prog_name="ct-sth-monitor")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """CT STH Monitor CLI.

    Periodically fetch Signed Tree Heads from Certificate Transparency
    Logs, audit every API call, and store the STHs that pass validation.
    """
    ctx.ensure_object(dict)

    # Load settings
    if config:
        settings = load_settings(config)
    else:
        settings = get_settings()

    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose

    # Setup logging
    log_level = "DEBUG" if verbose else settings.logging.level
    setup_logging(
        level=log_level,
        format=settings.logging.format,
        include_timestamp=settings.logging.include_timestamp,
        include_location=settings.logging.include_location,
    )


def _open_storage(settings: Settings) -> SQLiteStorage:
    db_path = settings.database_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    storage = SQLiteStorage(
        db_path,
        timeout=settings.database.timeout_seconds,
        wal_mode=settings.database.wal_mode,
    )
    storage.initialize()
    return storage


def _select_logs(settings: Settings, log_name: str | None, mock: bool) -> list[LogSettings]:
    """Resolve which Logs a command should monitor.

    Raises:
        click.ClickException: If nothing matches
    """
    if mock:
        return [
            LogSettings(
                name=MOCK_LOG_NAME,
                url=f"mock://{MOCK_LOG_NAME}/",
                period_seconds=MOCK_PERIOD_SECONDS,
            )
        ]

    if log_name is not None:
        try:
            return [settings.get_log(log_name)]
        except KeyError as e:
            raise click.ClickException(e.args[0]) from e

    if not settings.logs:
        raise click.ClickException(
            "No Logs configured. Add [[logs]] entries to the config or use --mock."
        )
    return list(settings.logs)


def _build_monitors(logs: list[LogSettings], storage: SQLiteStorage | EchoStorage) -> list[LogMonitor]:
    try:
        return [build_log_monitor(log, storage) for log in logs]
    except ValueError as e:
        raise click.ClickException(str(e)) from e


async def _run_until_signalled(monitors: list[LogMonitor]) -> dict[str, SchedulerStats | BaseException]:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops)
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    try:
        return await monitor_logs(monitors, stop)
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)


@main.command("db-init")
@click.pass_context
def db_init(ctx: click.Context) -> None:
    """Initialize the database schema.

    Creates all tables, indexes, and views if they don't exist.
    Safe to run multiple times.
    """
    settings = ctx.obj["settings"]
    logger = get_logger(__name__)

    db_path = settings.database_path
    console.print(f"Initializing database: [cyan]{db_path}[/cyan]")

    storage = _open_storage(settings)

    logger.info("database_initialized", path=str(db_path))
    console.print("[green]✓[/green] Database initialized successfully")

    storage.close()


@main.command("db-stats")
@click.pass_context
def db_stats(ctx: click.Context) -> None:
    """Show database statistics."""
    settings = ctx.obj["settings"]

    db_path = settings.database_path

    if not db_path.exists():
        console.print(f"[red]Database not found:[/red] {db_path}")
        console.print("Run 'ct-sth-monitor db-init' to create it.")
        return

    storage = SQLiteStorage(db_path)
    stats = storage.get_stats()

    table = Table(title="Database Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Database Path", str(db_path))
    table.add_row("File Size", f"{stats.get('file_size_mb', 0):.2f} MB")
    table.add_row("", "")
    table.add_row("API Calls", f"{stats.get('api_calls_count', 0):,}")
    table.add_row("Failed API Calls", f"{stats.get('failed_api_calls', 0):,}")
    table.add_row("STHs", f"{stats.get('sths_count', 0):,}")

    console.print(table)

    if stats.get("logs"):
        logs_table = Table(title="Latest STH per Log")
        logs_table.add_column("Log", style="cyan")
        logs_table.add_column("STHs", justify="right")
        logs_table.add_column("Tree Size", justify="right")
        logs_table.add_column("Age", justify="right")

        for row in stats["logs"]:
            logs_table.add_row(
                row["log_url"],
                f"{row['sth_count']:,}",
                f"{row['tree_size']:,}",
                format_age(row["timestamp"]),
            )

        console.print(logs_table)

    storage.close()


@main.command("run")
@click.option(
    "--log",
    "log_name",
    help="Monitor only this configured Log",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Log records instead of writing them to the database",
)
@click.option(
    "--mock",
    is_flag=True,
    help="Monitor a built-in mock Log instead of the configured ones",
)
@click.pass_context
def run(ctx: click.Context, log_name: str | None, dry_run: bool, mock: bool) -> None:
    """Monitor Logs until interrupted (Ctrl+C or SIGTERM).

    Each Log gets its own scheduler fetching an STH every period; every
    call is recorded and every STH that passes validation is stored.
    """
    settings = ctx.obj["settings"]

    logs = _select_logs(settings, log_name, mock)

    storage: SQLiteStorage | EchoStorage
    storage = EchoStorage() if dry_run else _open_storage(settings)

    monitors = _build_monitors(logs, storage)

    console.print("[bold]CT STH Monitor[/bold]")
    for log in logs:
        console.print(f"  [cyan]{log.name}[/cyan] {log.url} every {log.period_seconds:g}s")
    if dry_run:
        console.print("[yellow]Dry run:[/yellow] nothing will be written")

    try:
        results = asyncio.run(_run_until_signalled(monitors))
    finally:
        if isinstance(storage, SQLiteStorage):
            storage.close()

    # Show summary
    console.print()
    table = Table(title="Monitoring Summary")
    table.add_column("Log", style="cyan")
    table.add_column("Cycles", justify="right")
    table.add_column("Stored", justify="right")
    table.add_column("Skipped Ticks", justify="right")
    table.add_column("Success", justify="right")

    for name, result in results.items():
        if isinstance(result, BaseException):
            table.add_row(name, "-", "-", "-", f"[red]failed: {result}[/red]")
            continue
        table.add_row(
            name,
            f"{result.cycles_run:,}",
            f"{result.stored:,}",
            f"{result.ticks_skipped:,}",
            f"{result.success_rate:.1f}%",
        )

    console.print(table)


def _print_outcome(name: str, outcome: CycleOutcome) -> None:
    colour = "red" if outcome.status.is_failure else "green"
    mark = "✗" if outcome.status.is_failure else "✓"
    console.print(f"[{colour}]{mark}[/{colour}] {name}: [{colour}]{outcome.status.value}[/]")
    console.print(f"  Audit recorded: {'yes' if outcome.audit_recorded else 'no'}")
    if outcome.tree_size is not None:
        console.print(f"  Tree size: {outcome.tree_size:,}")
    if outcome.reject_reason:
        console.print(f"  Reject reason: {outcome.reject_reason}")
    if outcome.error:
        console.print(f"  Error: {outcome.error}")
    if outcome.duration_seconds is not None:
        console.print(f"  Duration: {outcome.duration_seconds:.2f}s")


async def _check_once(monitor: LogMonitor) -> CycleOutcome:
    try:
        await monitor.state.load()
        return await monitor.pipeline.run_cycle()
    finally:
        close = getattr(monitor.fetcher, "close", None)
        if close is not None:
            await close()


@main.command("check")
@click.option(
    "--log",
    "log_name",
    required=True,
    help="Configured Log to check",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Log records instead of writing them to the database",
)
@click.pass_context
def check(ctx: click.Context, log_name: str, dry_run: bool) -> None:
    """Run one fetch-check-store cycle for a Log and print the outcome.

    Exits with status 1 if the cycle did not store an STH.
    """
    settings = ctx.obj["settings"]

    logs = _select_logs(settings, log_name, mock=False)

    storage: SQLiteStorage | EchoStorage
    storage = EchoStorage() if dry_run else _open_storage(settings)

    try:
        (monitor,) = _build_monitors(logs, storage)
        with console.status(f"[bold green]Checking {monitor.name}..."):
            outcome = asyncio.run(_check_once(monitor))
    finally:
        if isinstance(storage, SQLiteStorage):
            storage.close()

    _print_outcome(monitor.name, outcome)

    if outcome.status.is_failure:
        ctx.exit(1)


@main.command("sths")
@click.option(
    "--log",
    "log_name",
    help="Only show STHs of this configured Log",
)
@click.option(
    "--limit",
    "-n",
    type=int,
    default=20,
    show_default=True,
    help="Number of STHs to show",
)
@click.pass_context
def sths(ctx: click.Context, log_name: str | None, limit: int) -> None:
    """Show the most recently stored STHs."""
    settings = ctx.obj["settings"]

    db_path = settings.database_path
    if not db_path.exists():
        console.print(f"[red]Database not found:[/red] {db_path}")
        console.print("Run 'ct-sth-monitor db-init' and 'ct-sth-monitor run' first.")
        return

    log_url = None
    if log_name is not None:
        log_url = _select_logs(settings, log_name, mock=False)[0].url

    storage = SQLiteStorage(db_path)
    rows = storage.recent_sths(log_url, limit=limit)
    storage.close()

    if not rows:
        console.print("[yellow]No STHs stored yet[/yellow]")
        return

    table = Table(title=f"Recent STHs ({len(rows)})")
    table.add_column("Log", style="cyan")
    table.add_column("Tree Size", justify="right")
    table.add_column("Timestamp")
    table.add_column("Age", justify="right")
    table.add_column("Root Hash", style="dim")

    for row in rows:
        table.add_row(
            row["log_url"],
            f"{row['tree_size']:,}",
            ms_to_datetime(row["timestamp"]).strftime("%Y-%m-%d %H:%M:%S"),
            format_age(row["timestamp"]),
            row["root_hash"][:16] + "…",
        )

    console.print(table)


if __name__ == "__main__":
    main()
