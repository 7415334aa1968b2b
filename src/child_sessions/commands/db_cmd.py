"""Schema administration commands: migrate, rollback, status."""

from pathlib import Path

import typer
from rich.table import Table

from child_sessions.commands import CONFIG_OPTION_HELP, load_cli_config, open_store
from child_sessions.store.migrations import get_migration_status
from child_sessions.utils import console, print_info, print_success, print_warning

db_app = typer.Typer(
    name="db",
    help="Manage the database schema",
    no_args_is_help=True,
)


@db_app.command("migrate")
def db_migrate(
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Apply every pending migration in order."""
    config = load_cli_config(config_path)
    with open_store(config, migrate=False) as store:
        applied = store.apply_migrations()

    if not applied:
        print_info("Schema is up to date")
        return
    for version in applied:
        print_success(f"Applied {version}")
    print_success(f"Applied {len(applied)} migration(s)")


@db_app.command("rollback")
def db_rollback(
    version: str = typer.Argument(..., help="Migration version to roll back"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Roll back a single applied migration.

    Later migrations that depend on it are not rolled back.
    """
    config = load_cli_config(config_path)
    with open_store(config, migrate=False) as store:
        entry = store.rollback_migration(version)

    print_success(f"Rolled back {entry.version}")
    print_warning("Later migrations are not checked; re-run 'db migrate' to restore it")


@db_app.command("status")
def db_status(
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Show every migration and when it was applied."""
    config = load_cli_config(config_path)
    with open_store(config, migrate=False) as store:
        status = get_migration_status(store)

    table = Table(title="Schema migrations")
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Applied at", no_wrap=True)
    for step, entry in status:
        applied_at = (
            entry.applied_at.strftime("%Y-%m-%d %H:%M:%S") if entry else "[yellow]pending[/yellow]"
        )
        table.add_row(step.version, step.description, applied_at)
    console.print(table)

    pending = sum(1 for _step, entry in status if entry is None)
    if pending:
        print_info(f"{pending} pending migration(s)")
