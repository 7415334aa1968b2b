"""Constants for child-sessions.

This module centralizes the magic strings and numbers used throughout the
record store, lifecycle layer and CLI.

Constants are organized by domain:
- Package metadata
- Table names
- Lifecycle defaults
- Configuration and environment
- Logging
"""

from typing import Final

from child_sessions import __version__

# =============================================================================
# Package Metadata
# =============================================================================

VERSION: Final[str] = __version__
PROJECT_NAME: Final[str] = "child-sessions"
PROJECT_TAGLINE: Final[str] = "Record-keeping backend for child therapy sessions"

# =============================================================================
# Tables
# =============================================================================

TABLE_MIGRATIONS: Final[str] = "schema_migrations"
TABLE_CHILDREN: Final[str] = "children"
TABLE_SESSIONS: Final[str] = "sessions"
TABLE_ACTIVITY_DEFINITIONS: Final[str] = "activity_definitions"
TABLE_ACTIVITY_INSTANCES: Final[str] = "activity_instances"
TABLE_NOTES: Final[str] = "notes"
TABLE_NOTE_TEMPLATES: Final[str] = "note_templates"
TABLE_REWARDS: Final[str] = "rewards"
TABLE_GOALS: Final[str] = "goals"
TABLE_FLASHCARDS: Final[str] = "flashcards"
TABLE_SESSION_FLASHCARDS: Final[str] = "session_flashcards"

# Tables reachable through the generic RecordStore helpers.
# The ledger table is managed only by the migration module.
RECORD_TABLES: Final[frozenset[str]] = frozenset(
    {
        TABLE_CHILDREN,
        TABLE_SESSIONS,
        TABLE_ACTIVITY_DEFINITIONS,
        TABLE_ACTIVITY_INSTANCES,
        TABLE_NOTES,
        TABLE_NOTE_TEMPLATES,
        TABLE_REWARDS,
        TABLE_GOALS,
        TABLE_FLASHCARDS,
        TABLE_SESSION_FLASHCARDS,
    }
)

# Entity labels used in error messages
ENTITY_CHILD: Final[str] = "Child"
ENTITY_SESSION: Final[str] = "Session"
ENTITY_ACTIVITY_DEFINITION: Final[str] = "Activity definition"
ENTITY_ACTIVITY_INSTANCE: Final[str] = "Activity instance"

# =============================================================================
# Lifecycle
# =============================================================================

# Appended to an activity instance's notes when the auto-close sweep ends it
AUTO_CLOSE_NOTE_TEMPLATE: Final[str] = "(Auto-closed after {minutes} minutes)"
AUTO_CLOSE_SKIP_ALREADY_ENDED: Final[str] = "already ended"
AUTO_CLOSE_SKIP_NOT_FOUND: Final[str] = "not found"
DEFAULT_AUTO_CLOSE_MAX_MINUTES: Final[int] = 60
MIN_AUTO_CLOSE_MAX_MINUTES: Final[int] = 1

# =============================================================================
# Storage
# =============================================================================

DEFAULT_DATA_DIR: Final[str] = ".child-sessions"
DEFAULT_DB_FILENAME: Final[str] = "child_sessions.db"
DEFAULT_CONFIG_FILENAME: Final[str] = "config.yaml"
DEFAULT_BUSY_TIMEOUT_SECONDS: Final[float] = 60.0
MAX_BUSY_TIMEOUT_SECONDS: Final[float] = 600.0

# =============================================================================
# Environment Variables
# =============================================================================

ENV_DB_PATH: Final[str] = "CHILD_SESSIONS_DB_PATH"
ENV_LOG_LEVEL: Final[str] = "CHILD_SESSIONS_LOG_LEVEL"
ENV_DEBUG: Final[str] = "CHILD_SESSIONS_DEBUG"
ENV_CONFIG_PATH: Final[str] = "CHILD_SESSIONS_CONFIG"

# =============================================================================
# Logging
# =============================================================================

LOGGER_NAME: Final[str] = "child_sessions"
LOG_LEVEL_DEBUG: Final[str] = "DEBUG"
LOG_LEVEL_INFO: Final[str] = "INFO"
LOG_LEVEL_WARNING: Final[str] = "WARNING"
LOG_LEVEL_ERROR: Final[str] = "ERROR"
VALID_LOG_LEVELS: Final[tuple[str, ...]] = (
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_INFO,
    LOG_LEVEL_WARNING,
    LOG_LEVEL_ERROR,
)
DEFAULT_LOG_ROTATION_ENABLED: Final[bool] = True
DEFAULT_LOG_MAX_SIZE_MB: Final[int] = 10
DEFAULT_LOG_BACKUP_COUNT: Final[int] = 3
MIN_LOG_MAX_SIZE_MB: Final[int] = 1
MAX_LOG_MAX_SIZE_MB: Final[int] = 100
MAX_LOG_BACKUP_COUNT: Final[int] = 10
