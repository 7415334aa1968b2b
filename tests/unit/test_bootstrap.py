"""Tests for startup sequencing and logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from unittest.mock import patch

import pytest

from child_sessions.bootstrap import configure_logging, initialize_store
from child_sessions.config import ChildSessionsConfig, LogRotationConfig
from child_sessions.exceptions import MigrationError
from child_sessions.store.migrations import get_migrations


@pytest.fixture()
def app_logger() -> logging.Logger:
    return logging.getLogger("child_sessions")


# ==========================================================================
# initialize_store()
# ==========================================================================


class TestInitializeStore:
    def test_migrates_and_seeds(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig(database_path=str(tmp_path / "records.db"))

        store = initialize_store(config)
        try:
            assert len(store.get_applied_migrations()) == len(get_migrations())
            assert store.count("activity_definitions") == 5
            assert store.count("note_templates") == 5
        finally:
            store.close()

    def test_seeding_can_be_disabled(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig(database_path=str(tmp_path / "records.db"), seed_defaults=False)

        store = initialize_store(config)
        try:
            assert store.count("activity_definitions") == 0
        finally:
            store.close()

    def test_second_startup_is_a_no_op(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig(database_path=str(tmp_path / "records.db"))
        initialize_store(config).close()

        store = initialize_store(config)
        try:
            assert store.count("activity_definitions") == 5
        finally:
            store.close()

    def test_relative_path_uses_project_root(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig(database_path="db/records.db")

        store = initialize_store(config, project_root=tmp_path)
        store.close()

        assert (tmp_path / "db" / "records.db").exists()

    def test_migration_failure_is_fatal(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig(database_path=str(tmp_path / "records.db"))
        failure = MigrationError("Migration failed", version="003_create_rewards_and_goals")

        with (
            patch("child_sessions.store.migrations.apply_migrations", side_effect=failure),
            patch("child_sessions.bootstrap.seed_defaults") as seed,
            patch("child_sessions.store.core.RecordStore.close") as close,
        ):
            with pytest.raises(MigrationError):
                initialize_store(config)

        close.assert_called_once()
        seed.assert_not_called()

    def test_unreadable_database_file_is_fatal(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        db_file = tmp_path / "records.db"
        db_file.write_bytes(b"this is not a sqlite database" * 64)
        config = ChildSessionsConfig(database_path=str(db_file))

        with (
            patch("child_sessions.store.core.RecordStore.close") as close,
            caplog.at_level(logging.CRITICAL, logger="child_sessions.bootstrap"),
            pytest.raises(MigrationError),
        ):
            initialize_store(config)

        close.assert_called_once()
        assert "refusing to start" in caplog.text


# ==========================================================================
# configure_logging()
# ==========================================================================


class TestConfigureLogging:
    def test_stream_handler_by_default(self, app_logger: logging.Logger) -> None:
        configure_logging("warning")

        assert app_logger.level == logging.WARNING
        assert app_logger.propagate is False
        assert len(app_logger.handlers) == 1
        assert isinstance(app_logger.handlers[0], logging.StreamHandler)

    def test_reconfigure_does_not_stack_handlers(self, app_logger: logging.Logger) -> None:
        configure_logging("INFO")
        configure_logging("DEBUG")

        assert len(app_logger.handlers) == 1
        assert app_logger.level == logging.DEBUG

    def test_rotating_file_handler(self, app_logger: logging.Logger, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "child_sessions.log"

        configure_logging("INFO", log_file, LogRotationConfig(max_size_mb=2, backup_count=4))
        logging.getLogger("child_sessions.store.core").info("hello")

        handler = app_logger.handlers[0]
        assert isinstance(handler, RotatingFileHandler)
        assert handler.maxBytes == 2 * 1024 * 1024
        assert handler.backupCount == 4
        handler.flush()
        assert "hello" in log_file.read_text()

    def test_plain_file_handler_when_rotation_disabled(
        self, app_logger: logging.Logger, tmp_path: Path
    ) -> None:
        configure_logging("INFO", tmp_path / "app.log", LogRotationConfig(enabled=False))

        handler = app_logger.handlers[0]
        assert type(handler) is logging.FileHandler

    def test_unknown_level_falls_back_to_info(self, app_logger: logging.Logger) -> None:
        configure_logging("verbose")

        assert app_logger.level == logging.INFO
