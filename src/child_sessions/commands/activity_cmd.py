"""Activity commands: the auto-close sweep run by external schedulers."""

from pathlib import Path

import typer

from child_sessions.commands import CONFIG_OPTION_HELP, load_cli_config, open_store
from child_sessions.utils import print_info, print_success, print_warning

activity_app = typer.Typer(
    name="activity",
    help="Manage activity instances",
    no_args_is_help=True,
)


@activity_app.command("auto-close")
def activity_auto_close(
    session_id: int = typer.Argument(..., help="Session ID"),
    max_minutes: int | None = typer.Option(
        None,
        "--max-minutes",
        "-m",
        min=0,
        help="Close running activities older than this (default: auto_close_max_minutes from config)",
    ),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Close running activities that were never ended."""
    config = load_cli_config(config_path)
    threshold = config.auto_close_max_minutes if max_minutes is None else max_minutes
    with open_store(config) as store:
        result = store.auto_close_activities(session_id, threshold)

    if not result.closed and not result.skipped:
        print_info(f"No activities older than {threshold} minutes in session {session_id}")
        return

    if result.closed:
        ids = ", ".join(str(i) for i in result.closed_ids)
        print_success(f"Auto-closed {len(result.closed)} activities: {ids}")
    for skipped in result.skipped:
        print_warning(f"Skipped activity {skipped.instance_id}: {skipped.reason}")
    if result.has_failures:
        raise typer.Exit(code=1)
