"""Tests for the exception hierarchy."""

from pathlib import Path

import pytest

from child_sessions.exceptions import (
    ChildSessionsError,
    ConfigurationError,
    ConflictError,
    ConstraintViolationError,
    MigrationError,
    MigrationNotAppliedError,
    MigrationNotFoundError,
    MigrationOrderError,
    NotFoundError,
    StorageError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error",
    [
        ConfigurationError("bad"),
        NotFoundError("Child", 1),
        ConflictError("busy"),
        ValidationError("bad", field="name"),
        StorageError("io"),
        ConstraintViolationError("dup"),
        MigrationError("failed"),
        MigrationNotFoundError("001"),
        MigrationNotAppliedError("001"),
        MigrationOrderError("order"),
    ],
)
def test_every_error_is_a_child_sessions_error(error: ChildSessionsError) -> None:
    assert isinstance(error, ChildSessionsError)


def test_message_without_details() -> None:
    assert str(ChildSessionsError("plain")) == "plain"


def test_not_found_renders_id() -> None:
    error = NotFoundError("Session", 12)

    assert str(error) == "Session not found (id=12)"
    assert error.entity == "Session"
    assert error.entity_id == 12


def test_conflict_details() -> None:
    error = ConflictError("Session has already ended", "Session", 3)

    assert error.details == {"entity": "Session", "id": 3}


def test_validation_error_truncates_long_values() -> None:
    error = ValidationError("too long", field="notes", value="x" * 150, expected="short text")

    assert error.details["value"] == "x" * 100 + "..."
    assert error.details["expected"] == "short text"


def test_storage_error_keeps_cause() -> None:
    cause = RuntimeError("disk I/O error")
    error = StorageError("Database operation failed", operation="insert", table="notes", cause=cause)

    assert error.cause is cause
    assert "table=notes" in str(error)
    assert "cause=disk I/O error" in str(error)


def test_constraint_violation_is_storage_error() -> None:
    assert issubclass(ConstraintViolationError, StorageError)


def test_migration_not_applied_message() -> None:
    error = MigrationNotAppliedError("003_create_rewards_and_goals")

    assert isinstance(error, MigrationError)
    assert error.version == "003_create_rewards_and_goals"
    assert str(error).startswith("Migration was not applied")


def test_configuration_error_details() -> None:
    error = ConfigurationError("Invalid", config_file=Path("/tmp/config.yaml"), key="log_level")

    assert error.details == {"config_file": "/tmp/config.yaml", "key": "log_level"}
