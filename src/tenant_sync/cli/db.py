"""Database commands for Tenant Sync."""

import typer

from tenant_sync.db import create_tables, dispose_engine

from .common import console, run_async_command

app = typer.Typer(help="Manage the sync database")


@app.command("init")
def db_init() -> None:
    """Create all tables (use Alembic migrations in production)."""

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Database init failed")
    console.print("[green]Database tables created.[/green]")
