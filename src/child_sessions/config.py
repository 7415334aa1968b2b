"""Configuration management for child-sessions.

Configuration follows a priority hierarchy:
1. Environment variables (CHILD_SESSIONS_*)
2. Project config (.child-sessions/config.yaml)
3. Hardcoded defaults in this module
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from child_sessions.constants import (
    DEFAULT_AUTO_CLOSE_MAX_MINUTES,
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_DATA_DIR,
    DEFAULT_DB_FILENAME,
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_MAX_SIZE_MB,
    DEFAULT_LOG_ROTATION_ENABLED,
    ENV_CONFIG_PATH,
    ENV_DB_PATH,
    ENV_DEBUG,
    ENV_LOG_LEVEL,
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_INFO,
    MAX_BUSY_TIMEOUT_SECONDS,
    MAX_LOG_BACKUP_COUNT,
    MAX_LOG_MAX_SIZE_MB,
    MIN_AUTO_CLOSE_MAX_MINUTES,
    MIN_LOG_MAX_SIZE_MB,
    VALID_LOG_LEVELS,
)
from child_sessions.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class LogRotationConfig(BaseModel):
    """Log file rotation settings.

    Prevents unbounded growth of the log file by rotating it when it exceeds
    the configured size limit.
    """

    enabled: bool = Field(default=DEFAULT_LOG_ROTATION_ENABLED, description="Rotate log files")
    max_size_mb: int = Field(
        default=DEFAULT_LOG_MAX_SIZE_MB,
        ge=MIN_LOG_MAX_SIZE_MB,
        le=MAX_LOG_MAX_SIZE_MB,
        description="Maximum log file size in megabytes before rotation",
    )
    backup_count: int = Field(
        default=DEFAULT_LOG_BACKUP_COUNT,
        ge=0,
        le=MAX_LOG_BACKUP_COUNT,
        description="Number of rotated files to keep",
    )

    def get_max_bytes(self) -> int:
        """Get maximum log file size in bytes."""
        return self.max_size_mb * 1024 * 1024


class ChildSessionsConfig(BaseModel):
    """Main child-sessions configuration."""

    database_path: str = Field(
        default=f"{DEFAULT_DATA_DIR}/{DEFAULT_DB_FILENAME}",
        description="SQLite database file (relative paths resolve against the project root)",
    )
    busy_timeout_seconds: float = Field(
        default=DEFAULT_BUSY_TIMEOUT_SECONDS,
        gt=0,
        le=MAX_BUSY_TIMEOUT_SECONDS,
        description="How long a connection waits on a locked database",
    )
    log_level: str = Field(default=LOG_LEVEL_INFO, description="Log level")
    log_file: str | None = Field(default=None, description="Optional log file path")
    log_rotation: LogRotationConfig = Field(
        default_factory=LogRotationConfig, description="Log rotation settings"
    )
    seed_defaults: bool = Field(
        default=True, description="Seed default activity definitions and note templates"
    )
    auto_close_max_minutes: int = Field(
        default=DEFAULT_AUTO_CLOSE_MAX_MINUTES,
        ge=MIN_AUTO_CLOSE_MAX_MINUTES,
        description="Running activities older than this are closed by the auto-close sweep",
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return level

    @classmethod
    def load(cls, config_path: Path) -> "ChildSessionsConfig":
        """Load configuration from file.

        A missing or empty file yields the defaults.

        Raises:
            ConfigurationError: If the file is not valid YAML or holds invalid values.
        """
        if not config_path.exists():
            logger.debug(f"No config file at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", config_file=config_path) from e

        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("Config root must be a mapping", config_file=config_path)

        try:
            return cls(**data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(
                f"Invalid configuration: {first.get('msg')}",
                config_file=config_path,
                key=key or None,
            ) from e

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def get_database_path(self, project_root: Path | None = None) -> Path:
        """Resolve the database path, honoring the CHILD_SESSIONS_DB_PATH override."""
        raw = os.environ.get(ENV_DB_PATH) or self.database_path
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = (project_root or Path.cwd()) / path
        return path

    def get_effective_log_level(self) -> str:
        """Get effective log level, considering environment variable overrides.

        Priority (highest to lowest):
        1. CHILD_SESSIONS_DEBUG=1 → DEBUG
        2. CHILD_SESSIONS_LOG_LEVEL environment variable
        3. Config file log_level setting
        """
        if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
            return LOG_LEVEL_DEBUG

        env_level = os.environ.get(ENV_LOG_LEVEL, "").upper()
        if env_level in VALID_LOG_LEVELS:
            return env_level

        return self.log_level

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return self.model_dump(mode="json")


def get_config_path(project_root: Path | None = None) -> Path:
    """Locate the config file (CHILD_SESSIONS_CONFIG wins over the default location)."""
    override = os.environ.get(ENV_CONFIG_PATH)
    if override:
        return Path(override).expanduser()
    return (project_root or Path.cwd()) / DEFAULT_DATA_DIR / DEFAULT_CONFIG_FILENAME


def load_config(config_path: Path | None = None) -> ChildSessionsConfig:
    """Load configuration from an explicit path or the default location."""
    return ChildSessionsConfig.load(config_path or get_config_path())
