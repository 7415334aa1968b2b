"""Session lifecycle commands: start, end, active."""

from pathlib import Path

import typer

from child_sessions.commands import CONFIG_OPTION_HELP, load_cli_config, open_store
from child_sessions.utils import console, print_info, print_success

session_app = typer.Typer(
    name="session",
    help="Start and end therapy sessions",
    no_args_is_help=True,
)


@session_app.command("start")
def session_start(
    child_id: int = typer.Argument(..., help="Child ID"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Open a new session for a child."""
    config = load_cli_config(config_path)
    with open_store(config) as store:
        session = store.start_session(child_id)

    name = session.child.name if session.child else f"child {child_id}"
    print_success(f"Started session {session.id} for {name}")


@session_app.command("end")
def session_end(
    session_id: int = typer.Argument(..., help="Session ID"),
    summary: str = typer.Option("", "--summary", "-s", help="Session summary text"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """End an open session."""
    config = load_cli_config(config_path)
    with open_store(config) as store:
        session = store.end_session(session_id, summary)

    print_success(f"Ended session {session.id} after {session.duration_minutes} minutes")


@session_app.command("active")
def session_active(
    child_id: int = typer.Argument(..., help="Child ID"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Show the child's open session, if any."""
    config = load_cli_config(config_path)
    with open_store(config) as store:
        session = store.get_active_session(child_id)
        running = store.list_active_activities(session.id) if session and session.id else []

    if session is None:
        print_info(f"No active session for child {child_id}")
        return

    console.print(f"[bold]Session {session.id}[/bold]")
    if session.child:
        console.print(f"  Child: {session.child.name}")
    console.print(f"  Started: {session.start_time:%Y-%m-%d %H:%M}")
    console.print(f"  Running activities: {len(running)}")
    for instance in running:
        name = instance.activity.name if instance.activity else f"#{instance.activity_def_id}"
        console.print(f"    [cyan]{instance.id}[/cyan] {name}")
