"""Tests for the generic RecordStore helpers and transaction handling."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from child_sessions.exceptions import ConstraintViolationError, NotFoundError, StorageError
from child_sessions.store.core import RecordStore


class TestRecordHelpers:
    def test_insert_stamps_audit_columns(self, store: RecordStore) -> None:
        child_id = store.insert("children", {"name": "Alya"})

        row = store.find_by_id("children", child_id)
        assert row["created_at"] == row["updated_at"]
        assert row["created_at"].startswith("2024-03-04T09:00:00")
        assert row["deleted_at"] is None

    def test_ids_are_ordered(self, store: RecordStore) -> None:
        ids = [store.insert("children", {"name": f"c{i}"}) for i in range(3)]

        assert ids == [1, 2, 3]

    def test_find_by_id_missing(self, store: RecordStore) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            store.find_by_id("children", 42, entity="Child")

        assert str(exc_info.value) == "Child not found (id=42)"

    def test_soft_deleted_rows_are_hidden_by_default(self, store: RecordStore) -> None:
        keep = store.insert("children", {"name": "keep"})
        gone = store.insert("children", {"name": "gone"})
        store.soft_delete("children", gone)

        assert [r["id"] for r in store.find_where("children")] == [keep]
        assert len(store.find_where("children", include_deleted=True)) == 2
        assert store.count("children") == 1
        assert store.find_by_id("children", gone, include_deleted=True)["deleted_at"] is not None

    def test_update_guard_predicate(self, store: RecordStore) -> None:
        child_id = store.insert("children", {"name": "Alya", "gender": "F"})

        assert store.update("children", child_id, {"name": "x"}, where="gender = ?", params=("M",)) == 0
        assert store.update("children", child_id, {"name": "Alya R"}, where="gender = ?", params=("F",)) == 1
        assert store.find_by_id("children", child_id)["name"] == "Alya R"

    def test_update_ignores_deleted_rows(self, store: RecordStore) -> None:
        child_id = store.insert("children", {"name": "Alya"})
        store.soft_delete("children", child_id)

        assert store.update("children", child_id, {"name": "x"}) == 0

    def test_unknown_table_is_rejected(self, store: RecordStore) -> None:
        with pytest.raises(ValueError):
            store.insert("schema_migrations", {"version": "x"})
        with pytest.raises(ValueError):
            store.find_where("children; DROP TABLE children")

    def test_constraint_violation(self, store: RecordStore) -> None:
        with pytest.raises(ConstraintViolationError) as exc_info:
            store.insert("sessions", {"child_id": 999, "start_time": "2024-01-01T00:00:00"})

        assert exc_info.value.table == "sessions"
        assert exc_info.value.operation == "insert"

    def test_storage_error_wraps_driver_error(self, store: RecordStore) -> None:
        with pytest.raises(StorageError) as exc_info:
            store.find_where("children", "no_such_column = 1")

        assert exc_info.value.cause is not None
        assert not isinstance(exc_info.value, ConstraintViolationError)


class TestTransactions:
    def test_exception_rolls_back(self, store: RecordStore) -> None:
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert("children", {"name": "temp"})
                raise RuntimeError("abort")

        assert store.count("children", include_deleted=True) == 0

    def test_nested_transaction_joins_outer(self, store: RecordStore) -> None:
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert("children", {"name": "outer"})
                with store.transaction():
                    store.insert("children", {"name": "inner"})
                raise RuntimeError("abort")

        assert store.count("children", include_deleted=True) == 0

    def test_commit_is_visible_to_other_threads(self, store: RecordStore) -> None:
        with store.transaction():
            store.insert("children", {"name": "shared"})

        counts: list[int] = []
        worker = threading.Thread(target=lambda: counts.append(store.count("children")))
        worker.start()
        worker.join()

        assert counts == [1]


def test_store_creates_parent_directory(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "dir" / "records.db"

    store = RecordStore(db_path)
    store.apply_migrations()
    store.close()

    assert db_path.exists()


def test_close_is_idempotent(store: RecordStore) -> None:
    store.close()
    store.close()
    # A new connection is opened on next use
    assert store.count("children") == 0
