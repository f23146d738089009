"""Sync commands for Tenant Sync."""

import asyncio
import contextlib
import json
import signal
from datetime import timedelta
from typing import Any

import typer
from rich.table import Table

from tenant_sync.config import get_settings
from tenant_sync.db import dispose_engine, get_session
from tenant_sync.db.repositories import DataSourceRunRepository
from tenant_sync.exceptions import UnknownProviderError
from tenant_sync.sync import (
    BatchOrchestrator,
    OutputFormat,
    ScriptRegistry,
    SyncScheduler,
    build_dependency_graph,
)

from .common import (
    DataSourceFilterOption,
    OutputFormatOption,
    ProviderFilterOption,
    console,
    run_async_command,
)

app = typer.Typer(help="Run and inspect tenant data-source syncs")


def _format_dt(value: Any) -> str:
    return value.isoformat(timespec="seconds") if value is not None else "-"


@app.command("run")
def sync_run(
    output_format: OutputFormatOption = OutputFormat.TEXT,
    triggered_by: str = typer.Option(
        "cli",
        "--triggered-by",
        help="Recorded on the import batch as the trigger source",
    ),
) -> None:
    """Run one sync sweep across every enabled data source."""

    async def _run() -> dict[str, Any]:
        try:
            orchestrator = BatchOrchestrator.from_settings()
            result = await orchestrator.run(triggered_by=triggered_by)
            return result.to_dict()
        finally:
            await dispose_engine()

    result = run_async_command(_run(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result))
        return

    summary = result.get("summary", {})
    if not summary.get("lock_acquired", True):
        console.print("[yellow]Another sync sweep is already running; nothing to do.[/yellow]")
        return

    console.print("[bold]Sync Complete[/bold]")
    console.print(f"  [dim]Batch:[/dim] {summary.get('batch_id')}")
    console.print()
    console.print(f"  [bold]Data sources:[/bold]      {summary.get('data_sources_processed', 0)}")
    console.print(f"  [green]Scripts executed:[/green]  {summary.get('scripts_executed', 0)}")
    console.print(f"  [dim]Scripts skipped:[/dim]   {summary.get('scripts_skipped', 0)}")
    scripts_failed = summary.get("scripts_failed", 0)
    if scripts_failed > 0:
        console.print(f"  [red]Scripts failed:[/red]    {scripts_failed}")
    console.print(f"  Records imported: {summary.get('records_imported', 0)}")
    console.print(f"  Duration: {summary.get('execution_time_ms', 0) / 1000:.1f}s")

    errors = result.get("errors", [])
    if errors:
        console.print()
        console.print("[bold red]Failed scripts:[/bold red]")
        for error in errors:
            message = str(error.get("error", "Unknown error"))[:120]
            console.print(f"  {error.get('data_source_id')} {error.get('script')}: {message}")

    tenant_failures = result.get("tenant_failures", [])
    if tenant_failures:
        console.print()
        console.print("[bold red]Aborted data sources:[/bold red]")
        for failure in tenant_failures:
            console.print(
                f"  tenant {failure.get('tenant_id')} / {failure.get('data_source_id')}: "
                f"{str(failure.get('error'))[:120]}"
            )


@app.command("schedule")
def sync_schedule(
    interval: int | None = typer.Option(
        None,
        "--interval",
        "-i",
        min=1,
        help="Minutes between sweeps (defaults to SCHEDULER__INTERVAL_MINUTES)",
    ),
    cron: str | None = typer.Option(
        None,
        "--cron",
        help="Crontab expression such as '*/15 * * * *' (defaults to SCHEDULER__CRON)",
    ),
    max_runs: int | None = typer.Option(
        None,
        "--max-runs",
        min=1,
        help="Stop after this many sweeps",
    ),
) -> None:
    """Run sync sweeps on a schedule until interrupted."""
    settings = get_settings()
    minutes = interval or settings.scheduler.interval_minutes
    # An explicit --interval wins over a configured cron
    expression = cron or (None if interval else settings.scheduler.cron)

    async def _schedule() -> None:
        try:
            scheduler = SyncScheduler(
                BatchOrchestrator.from_settings(),
                interval=timedelta(minutes=minutes),
                cron=expression,
                run_on_start=settings.scheduler.run_on_start,
            )
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(sig, scheduler.stop)
            await scheduler.run_forever(max_runs=max_runs)
        finally:
            await dispose_engine()

    schedule = f"on '{expression}'" if expression else f"every {minutes} minute(s)"
    console.print(f"[dim]Scheduling sync {schedule}. Ctrl+C to stop.[/dim]")
    run_async_command(_schedule(), error_prefix="Scheduler failed")


@app.command("scripts")
def sync_scripts(
    provider: ProviderFilterOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """List registered scripts and their resolved dependencies."""
    registry = ScriptRegistry.default()
    providers = [provider] if provider else registry.providers

    listing: dict[str, list[dict[str, Any]]] = {}
    for name in providers:
        try:
            scripts = registry.get_scripts(name)
        except UnknownProviderError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None
        graph = build_dependency_graph(scripts)
        listing[name.lower()] = [
            {
                "script": script.identity,
                "resource": script.resource_name,
                "depends_on": list(script.depends_on),
                "prerequisites": graph[script.identity],
                "retention_days": script.retention_window.days,
            }
            for script in scripts
        ]

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(listing))
        return

    for name, entries in listing.items():
        table = Table(title=f"Provider: {name}")
        table.add_column("Script")
        table.add_column("Retention", justify="right")
        table.add_column("Runs after")
        for entry in entries:
            table.add_row(
                entry["script"],
                f"{entry['retention_days']}d",
                ", ".join(entry["prerequisites"]) or "-",
            )
        console.print(table)


@app.command("runs")
def sync_runs(
    data_source: DataSourceFilterOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show run records with their status and watermarks."""

    async def _runs() -> list[dict[str, Any]]:
        try:
            async with get_session() as session:
                runs = await DataSourceRunRepository(session).list_runs(
                    data_source_id=data_source
                )
                return [
                    {
                        "id": run.id,
                        "data_source_id": run.data_source_id,
                        "script": run.script_name,
                        "status": run.status.value,
                        "batch_id": run.import_batch_id,
                        "started_at": _format_dt(run.started_at),
                        "completed_at": _format_dt(run.completed_at),
                        "records_imported": run.records_imported,
                        "last_fetched_data_at": _format_dt(run.last_fetched_data_at),
                        "earliest_fetched_data_at": _format_dt(run.earliest_fetched_data_at),
                        "error": run.error_message,
                    }
                    for run in runs
                ]
        finally:
            await dispose_engine()

    rows = run_async_command(_runs(), error_prefix="Failed to load runs")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(rows))
        return

    if not rows:
        console.print("[dim]No runs recorded yet.[/dim]")
        return

    table = Table(title="Script runs")
    table.add_column("Data source")
    table.add_column("Script")
    table.add_column("Status")
    table.add_column("Records", justify="right")
    table.add_column("Earliest")
    table.add_column("Latest")
    status_style = {"COMPLETED": "green", "FAILED": "red", "RUNNING": "yellow"}
    for row in rows:
        style = status_style.get(row["status"], "white")
        table.add_row(
            row["data_source_id"],
            row["script"],
            f"[{style}]{row['status']}[/{style}]",
            str(row["records_imported"]),
            row["earliest_fetched_data_at"],
            row["last_fetched_data_at"],
        )
    console.print(table)
