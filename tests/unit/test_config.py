"""Tests for configuration loading and environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from child_sessions.config import ChildSessionsConfig, LogRotationConfig, get_config_path, load_config
from child_sessions.exceptions import ConfigurationError


class TestLoad:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig.load(tmp_path / "missing.yaml")

        assert config.log_level == "INFO"
        assert config.seed_defaults is True
        assert config.auto_close_max_minutes == 60
        assert config.database_path == ".child-sessions/child_sessions.db"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert ChildSessionsConfig.load(path) == ChildSessionsConfig()

    def test_values_are_read(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "database_path: /var/lib/sessions.db\n"
            "log_level: debug\n"
            "auto_close_max_minutes: 45\n"
            "log_rotation:\n"
            "  max_size_mb: 5\n"
        )

        config = ChildSessionsConfig.load(path)

        assert config.database_path == "/var/lib/sessions.db"
        assert config.log_level == "DEBUG"
        assert config.auto_close_max_minutes == 45
        assert config.log_rotation.max_size_mb == 5
        assert config.log_rotation.get_max_bytes() == 5 * 1024 * 1024

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("log_level: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ChildSessionsConfig.load(path)

    def test_invalid_value_names_the_key(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("auto_close_max_minutes: 0\n")

        with pytest.raises(ConfigurationError) as exc_info:
            ChildSessionsConfig.load(path)

        assert exc_info.value.key == "auto_close_max_minutes"

    def test_invalid_log_level(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("log_level: LOUD\n")

        with pytest.raises(ConfigurationError):
            ChildSessionsConfig.load(path)

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ChildSessionsConfig.load(path)

    def test_save_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.yaml"
        original = ChildSessionsConfig(
            log_level="WARNING",
            seed_defaults=False,
            log_rotation=LogRotationConfig(enabled=False),
        )

        original.save(path)

        assert ChildSessionsConfig.load(path) == original


class TestOverrides:
    def test_relative_database_path_resolves_against_root(self, tmp_path: Path) -> None:
        config = ChildSessionsConfig(database_path="data/records.db")

        assert config.get_database_path(tmp_path) == tmp_path / "data" / "records.db"

    def test_env_database_path_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        override = tmp_path / "override.db"
        monkeypatch.setenv("CHILD_SESSIONS_DB_PATH", str(override))

        assert ChildSessionsConfig().get_database_path(tmp_path) == override

    def test_debug_env_wins_over_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHILD_SESSIONS_DEBUG", "1")
        monkeypatch.setenv("CHILD_SESSIONS_LOG_LEVEL", "ERROR")

        assert ChildSessionsConfig(log_level="WARNING").get_effective_log_level() == "DEBUG"

    def test_log_level_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHILD_SESSIONS_LOG_LEVEL", "error")

        assert ChildSessionsConfig().get_effective_log_level() == "ERROR"

    def test_invalid_log_level_env_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHILD_SESSIONS_LOG_LEVEL", "chatty")

        assert ChildSessionsConfig(log_level="WARNING").get_effective_log_level() == "WARNING"

    def test_config_path_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        target = tmp_path / "custom.yaml"
        target.write_text("seed_defaults: false\n")
        monkeypatch.setenv("CHILD_SESSIONS_CONFIG", str(target))

        assert get_config_path() == target
        assert load_config().seed_defaults is False

    def test_default_config_path(self, tmp_path: Path) -> None:
        assert get_config_path(tmp_path) == tmp_path / ".child-sessions" / "config.yaml"
