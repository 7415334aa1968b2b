"""Main CLI entry point for child-sessions."""

from pathlib import Path

import typer
from dotenv import load_dotenv

from child_sessions.commands.activity_cmd import activity_app
from child_sessions.commands.db_cmd import db_app
from child_sessions.commands.session_cmd import session_app
from child_sessions.constants import PROJECT_TAGLINE, VERSION
from child_sessions.utils import console

# Load .env file from current directory if it exists
load_dotenv(Path.cwd() / ".env", verbose=False)

app = typer.Typer(
    name="child-sessions",
    help=PROJECT_TAGLINE,
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(db_app, name="db")
app.add_typer(session_app, name="session")
app.add_typer(activity_app, name="activity")


@app.command("version")
def version() -> None:
    """Show the installed version."""
    console.print(f"child-sessions {VERSION}")


if __name__ == "__main__":
    app()
