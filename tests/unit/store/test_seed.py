"""Tests for default reference data."""

from __future__ import annotations

from child_sessions.store.activities import (
    create_activity_definition,
    delete_activity_definition,
    list_activity_definitions,
)
from child_sessions.store.core import RecordStore
from child_sessions.store.seed import DEFAULT_ACTIVITIES, DEFAULT_NOTE_TEMPLATES, seed_defaults


def test_seed_populates_empty_tables(store: RecordStore) -> None:
    counts = seed_defaults(store)

    assert counts == {
        "activity_definitions": len(DEFAULT_ACTIVITIES),
        "note_templates": len(DEFAULT_NOTE_TEMPLATES),
    }
    names = {d.name for d in list_activity_definitions(store)}
    assert {"Speech Therapy", "Play Therapy", "Concentration Practice"} <= names
    speech = next(d for d in list_activity_definitions(store) if d.name == "Speech Therapy")
    assert speech.default_duration_minutes == 30


def test_seed_is_idempotent(store: RecordStore) -> None:
    seed_defaults(store)

    assert seed_defaults(store) == {"activity_definitions": 0, "note_templates": 0}
    assert store.count("activity_definitions") == len(DEFAULT_ACTIVITIES)
    assert store.count("note_templates") == len(DEFAULT_NOTE_TEMPLATES)


def test_seed_skips_table_with_user_rows(store: RecordStore) -> None:
    create_activity_definition(store, "Custom Activity")

    counts = seed_defaults(store)

    assert counts["activity_definitions"] == 0
    assert counts["note_templates"] == len(DEFAULT_NOTE_TEMPLATES)
    assert [d.name for d in list_activity_definitions(store)] == ["Custom Activity"]


def test_deleted_defaults_are_not_reseeded(store: RecordStore) -> None:
    seed_defaults(store)
    for definition in list_activity_definitions(store):
        delete_activity_definition(store, definition.id)

    assert seed_defaults(store)["activity_definitions"] == 0
    assert list_activity_definitions(store) == []
