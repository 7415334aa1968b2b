"""Custom exceptions for child-sessions.

This module defines a hierarchy of exceptions for consistent error handling
across the record store and lifecycle layer. All exceptions inherit from
ChildSessionsError, allowing callers to catch every domain error with a single
except clause if desired.

Exception hierarchy:
    ChildSessionsError (base)
    ├── ConfigurationError
    ├── NotFoundError
    ├── ConflictError
    ├── ValidationError
    ├── StorageError
    │   └── ConstraintViolationError
    └── MigrationError
        ├── MigrationNotFoundError
        ├── MigrationNotAppliedError
        └── MigrationOrderError
"""

from pathlib import Path
from typing import Any


class ChildSessionsError(Exception):
    """Base exception for all child-sessions errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize error.

        Args:
            message: Error description.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ChildSessionsError):
    """Raised when configuration is invalid or cannot be loaded.

    Examples:
        - Invalid YAML syntax in config file
        - Out-of-range numeric values
    """

    def __init__(
        self,
        message: str,
        config_file: Path | None = None,
        key: str | None = None,
    ):
        details: dict[str, Any] = {}
        if config_file:
            details["config_file"] = str(config_file)
        if key:
            details["key"] = key
        super().__init__(message, details)
        self.config_file = config_file
        self.key = key


# =============================================================================
# Lifecycle Errors
# =============================================================================


class NotFoundError(ChildSessionsError):
    """Raised when a referenced record does not exist or is soft-deleted."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", {"id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(ChildSessionsError):
    """Raised when an operation would violate a lifecycle invariant.

    Examples:
        - A session is already open for the child
        - The session or activity instance has already ended
        - An activity definition with the same name exists
    """

    def __init__(self, message: str, entity: str | None = None, entity_id: Any = None):
        details: dict[str, Any] = {}
        if entity:
            details["entity"] = entity
        if entity_id is not None:
            details["id"] = entity_id
        super().__init__(message, details)
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(ChildSessionsError):
    """Raised when input fails validation before any write happens."""

    def __init__(
        self,
        message: str,
        field: str,
        value: Any = None,
        expected: str | None = None,
    ):
        """Initialize validation error.

        Args:
            message: Error description.
            field: The field that failed validation.
            value: The invalid value (will be truncated if too long).
            expected: Description of expected value format.
        """
        super().__init__(message)
        self.details["field"] = field
        if value is not None:
            value_str = str(value)
            self.details["value"] = value_str[:100] + "..." if len(value_str) > 100 else value_str
        if expected:
            self.details["expected"] = expected
        self.field = field
        self.value = value
        self.expected = expected


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(ChildSessionsError):
    """Raised when the underlying database operation fails.

    The original driver exception is kept in ``cause`` (and chained via
    ``raise ... from``) so callers can inspect it.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        table: str | None = None,
        cause: Exception | None = None,
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        if cause is not None:
            details["cause"] = str(cause)
        super().__init__(message, details)
        self.operation = operation
        self.table = table
        self.cause = cause


class ConstraintViolationError(StorageError):
    """Raised when a write is rejected by a database constraint.

    Examples:
        - UNIQUE constraint on activity definition names
        - The single-open-session index on sessions
        - Foreign key references to missing rows
    """


# =============================================================================
# Migration Errors
# =============================================================================


class MigrationError(ChildSessionsError):
    """Raised when applying or rolling back a schema migration fails.

    A MigrationError during startup is fatal: lifecycle operations must not
    run against a partially migrated schema.
    """

    def __init__(
        self,
        message: str,
        version: str | None = None,
        cause: Exception | None = None,
    ):
        details: dict[str, Any] = {}
        if version:
            details["version"] = version
        if cause is not None:
            details["cause"] = str(cause)
        super().__init__(message, details)
        self.version = version
        self.cause = cause


class MigrationNotFoundError(MigrationError):
    """Raised when a version is not part of the declared migration list."""

    def __init__(self, version: str):
        super().__init__("Migration not found", version=version)


class MigrationNotAppliedError(MigrationError):
    """Raised when rolling back a version that has no ledger entry."""

    def __init__(self, version: str):
        super().__init__("Migration was not applied", version=version)


class MigrationOrderError(MigrationError):
    """Raised when migration versions are duplicated or not strictly ascending."""

    def __init__(self, message: str, version: str | None = None):
        super().__init__(message, version=version)
