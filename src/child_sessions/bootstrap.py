"""Process startup for child-sessions.

Startup order is fixed: configure logging, open the record store, apply every
pending migration, then seed default data. Lifecycle operations depend on the
schema the migrations establish, so nothing else may touch the store until
``initialize_store`` returns.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from child_sessions.config import ChildSessionsConfig, LogRotationConfig
from child_sessions.constants import LOGGER_NAME
from child_sessions.exceptions import MigrationError
from child_sessions.store.core import RecordStore
from child_sessions.store.seed import seed_defaults

logger = logging.getLogger(__name__)


def configure_logging(
    log_level: str,
    log_file: Path | None = None,
    log_rotation: LogRotationConfig | None = None,
) -> None:
    """Configure the package logger.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path. When set, output goes only to the file.
        log_rotation: Optional log rotation configuration.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)
    app_logger.propagate = False
    # Reconfiguring must not stack handlers
    app_logger.handlers.clear()

    if level == logging.DEBUG:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    file_error: OSError | None = None
    if log_file:
        try:
            rotation = log_rotation or LogRotationConfig()
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler: logging.Handler
            if rotation.enabled:
                file_handler = RotatingFileHandler(
                    log_file,
                    mode="a",
                    maxBytes=rotation.get_max_bytes(),
                    backupCount=rotation.backup_count,
                    encoding="utf-8",
                )
            else:
                file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")

            file_handler.setFormatter(formatter)
            app_logger.addHandler(file_handler)
            return
        except OSError as e:
            file_error = e

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    app_logger.addHandler(stream_handler)
    if file_error is not None:
        app_logger.warning(f"Could not set up file logging to {log_file}: {file_error}")


def initialize_store(
    config: ChildSessionsConfig, project_root: Path | None = None
) -> RecordStore:
    """Open the record store and bring its schema up to date.

    Args:
        config: Loaded configuration.
        project_root: Base directory for relative database paths (defaults to cwd).

    Returns:
        A RecordStore ready for lifecycle operations.

    Raises:
        MigrationError: If any migration fails. The store is closed first.
    """
    db_path = config.get_database_path(project_root)
    store = RecordStore(db_path, busy_timeout=config.busy_timeout_seconds)
    logger.debug(f"Opening record store at {db_path}")

    try:
        applied = store.apply_migrations()
    except MigrationError as e:
        logger.critical(f"Schema migration failed, refusing to start: {e}")
        store.close()
        raise

    if applied:
        logger.info(f"Applied {len(applied)} migrations: {', '.join(applied)}")

    if config.seed_defaults:
        seed_defaults(store)

    return store
