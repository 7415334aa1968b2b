"""CLI command groups - shared utilities.

Each command loads configuration, configures logging and opens the record
store through the helpers here, so every command starts up the same way.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from child_sessions.bootstrap import configure_logging, initialize_store
from child_sessions.config import ChildSessionsConfig, load_config
from child_sessions.exceptions import ChildSessionsError
from child_sessions.store.core import RecordStore
from child_sessions.utils import print_error

CONFIG_OPTION_HELP = "Path to config file (default: .child-sessions/config.yaml)"


def load_cli_config(config_path: Path | None) -> ChildSessionsConfig:
    """Load configuration and configure logging, exiting on invalid config."""
    try:
        config = load_config(config_path)
    except ChildSessionsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    log_file = Path(config.log_file) if config.log_file else None
    configure_logging(config.get_effective_log_level(), log_file, config.log_rotation)
    return config


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn domain errors into a red message and exit code 1."""
    try:
        yield
    except ChildSessionsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@contextmanager
def open_store(config: ChildSessionsConfig, migrate: bool = True) -> Iterator[RecordStore]:
    """Open the record store for one command, closing it afterwards.

    Args:
        config: Loaded configuration.
        migrate: Run startup (migrations and seeding) before yielding. Schema
            administration commands pass False to see the database as it is.
    """
    with handle_errors():
        if migrate:
            store = initialize_store(config)
        else:
            store = RecordStore(
                config.get_database_path(), busy_timeout=config.busy_timeout_seconds
            )
        try:
            yield store
        finally:
            store.close()


__all__ = [
    "CONFIG_OPTION_HELP",
    "handle_errors",
    "load_cli_config",
    "open_store",
]
