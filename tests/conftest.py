"""Pytest configuration and fixtures for child-sessions tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from child_sessions.store.core import RecordStore
from child_sessions.store.models import ActivityDefinition, Child

T0 = datetime(2024, 3, 4, 9, 0, 0)


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.current += timedelta(minutes=minutes, seconds=seconds)
        return self.current


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment overrides out of the tests."""
    for name in (
        "CHILD_SESSIONS_DB_PATH",
        "CHILD_SESSIONS_LOG_LEVEL",
        "CHILD_SESSIONS_DEBUG",
        "CHILD_SESSIONS_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo configure_logging() so handlers never outlive a test."""
    yield
    app_logger = logging.getLogger("child_sessions")
    for handler in app_logger.handlers:
        handler.close()
    app_logger.handlers.clear()
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "child_sessions.db"


@pytest.fixture()
def bare_store(db_path: Path, clock: FakeClock) -> Iterator[RecordStore]:
    """A RecordStore on an empty database (no migrations applied)."""
    store = RecordStore(db_path, clock=clock)
    yield store
    store.close()


@pytest.fixture()
def store(bare_store: RecordStore) -> RecordStore:
    """A RecordStore with every migration applied and no seed data."""
    bare_store.apply_migrations()
    return bare_store


@pytest.fixture()
def child(store: RecordStore) -> Child:
    from child_sessions.store.children import create_child

    return create_child(store, "Alya", guardian_name="Rina")


@pytest.fixture()
def definition(store: RecordStore) -> ActivityDefinition:
    from child_sessions.store.activities import create_activity_definition

    return create_activity_definition(
        store, "Speech Therapy", default_duration_minutes=30, category="Speech"
    )
