"""Core RecordStore class for the record store.

Contains the RecordStore class with connection management, the generic record
helpers (insert / find / update / soft delete) and delegation to the lifecycle
operation modules.
"""

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from child_sessions.constants import DEFAULT_BUSY_TIMEOUT_SECONDS, RECORD_TABLES
from child_sessions.exceptions import (
    ConstraintViolationError,
    NotFoundError,
    StorageError,
)
from child_sessions.store import activities, migrations, sessions
from child_sessions.store.models import (
    ActivityInstance,
    AutoCloseResult,
    LedgerEntry,
    Session,
    format_timestamp,
)

logger = logging.getLogger(__name__)


class RecordStore:
    """SQLite-backed relational store shared by the lifecycle components.

    One connection per thread. Connections run in autocommit mode and
    ``transaction()`` opens explicit ``BEGIN IMMEDIATE`` units of work, so
    schema changes and the writes that depend on them commit or roll back
    together.
    """

    def __init__(
        self,
        db_path: Path,
        clock: Callable[[], datetime] | None = None,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ):
        """Initialize the record store.

        The schema is not created here: run the migrations (see
        ``child_sessions.bootstrap.initialize_store``) before any lifecycle call.

        Args:
            db_path: Path to SQLite database file.
            clock: Source of "now" for every lifecycle timestamp.
            busy_timeout: Seconds to wait on a locked database.
        """
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._clock = clock or datetime.now
        self._local = threading.local()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=self.busy_timeout,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            try:
                with self._wrap_errors("connect"):
                    conn.execute("PRAGMA foreign_keys = ON")
                    conn.execute("PRAGMA journal_mode = WAL")
                    conn.execute("PRAGMA synchronous = NORMAL")
            except StorageError:
                conn.close()
                raise
            self._local.conn = conn
        result: sqlite3.Connection = self._local.conn
        return result

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for an atomic unit of work.

        Nested use joins the outer transaction. Any exception rolls back.
        """
        conn = self._get_connection()
        if conn.in_transaction:
            yield conn
            return

        with self._wrap_errors("begin"):
            conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            with self._wrap_errors("commit"):
                conn.commit()
        except BaseException as e:
            if conn.in_transaction:
                conn.rollback()
            if isinstance(e, sqlite3.Error):
                logger.error(f"Database transaction error: {e}", exc_info=True)
            raise

    @contextmanager
    def _wrap_errors(self, operation: str, table: str | None = None) -> Iterator[None]:
        """Translate sqlite3 errors into StorageError / ConstraintViolationError."""
        try:
            yield
        except sqlite3.IntegrityError as e:
            raise ConstraintViolationError(
                "Database constraint violated", operation=operation, table=table, cause=e
            ) from e
        except sqlite3.Error as e:
            logger.error(f"Database error during {operation}: {e}", exc_info=True)
            raise StorageError(
                "Database operation failed", operation=operation, table=table, cause=e
            ) from e

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in RECORD_TABLES:
            raise ValueError(f"Unknown table: {table}")

    def close(self) -> None:
        """Close the current thread's database connection."""
        if hasattr(self._local, "conn") and self._local.conn:
            self._local.conn.close()
            self._local.conn = None

    # ==========================================================================
    # Generic record operations
    # ==========================================================================

    def insert(self, table: str, values: dict[str, Any]) -> int:
        """Insert a record and return its new id.

        ``created_at`` and ``updated_at`` are stamped from the store clock.
        """
        self._check_table(table)
        stamp = format_timestamp(self.now())
        row = {**values, "created_at": stamp, "updated_at": stamp}
        columns = ", ".join(row)
        placeholders = ", ".join(f":{column}" for column in row)
        with self._wrap_errors("insert", table):
            cursor = self._get_connection().execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", row
            )
        return int(cursor.lastrowid or 0)

    def find_by_id(
        self,
        table: str,
        record_id: int,
        include_deleted: bool = False,
        entity: str | None = None,
    ) -> sqlite3.Row:
        """Fetch a single record by id.

        Raises:
            NotFoundError: If no such record exists (or it is soft-deleted).
        """
        self._check_table(table)
        query = f"SELECT * FROM {table} WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        with self._wrap_errors("find_by_id", table):
            row = self._get_connection().execute(query, (record_id,)).fetchone()
        if row is None:
            raise NotFoundError(entity or table, record_id)
        result: sqlite3.Row = row
        return result

    def find_where(
        self,
        table: str,
        where: str = "",
        params: Sequence[Any] = (),
        order_by: str | None = None,
        include_deleted: bool = False,
        limit: int | None = None,
    ) -> list[sqlite3.Row]:
        """Fetch records matching a SQL predicate."""
        self._check_table(table)
        conditions = [where] if where else []
        if not include_deleted:
            conditions.append("deleted_at IS NULL")
        query = f"SELECT * FROM {table}"
        if conditions:
            query += f" WHERE {' AND '.join(conditions)}"
        if order_by:
            query += f" ORDER BY {order_by}"
        if limit is not None:
            query += f" LIMIT {int(limit)}"
        with self._wrap_errors("find_where", table):
            return list(self._get_connection().execute(query, tuple(params)).fetchall())

    def count(
        self,
        table: str,
        where: str = "",
        params: Sequence[Any] = (),
        include_deleted: bool = False,
    ) -> int:
        """Count records matching a SQL predicate."""
        self._check_table(table)
        conditions = [where] if where else []
        if not include_deleted:
            conditions.append("deleted_at IS NULL")
        query = f"SELECT COUNT(*) FROM {table}"
        if conditions:
            query += f" WHERE {' AND '.join(conditions)}"
        with self._wrap_errors("count", table):
            row = self._get_connection().execute(query, tuple(params)).fetchone()
        return int(row[0]) if row else 0

    def update(
        self,
        table: str,
        record_id: int,
        values: dict[str, Any],
        where: str | None = None,
        params: Sequence[Any] = (),
    ) -> int:
        """Update a live record and return the number of rows changed.

        Args:
            table: Table name.
            record_id: Record to update.
            values: Column values to set. ``updated_at`` is stamped automatically.
            where: Optional extra guard predicate (e.g. ``end_time IS NULL``).
            params: Parameters for the guard predicate.
        """
        self._check_table(table)
        row = {**values, "updated_at": format_timestamp(self.now())}
        assignments = ", ".join(f"{column} = ?" for column in row)
        query = f"UPDATE {table} SET {assignments} WHERE id = ? AND deleted_at IS NULL"
        if where:
            query += f" AND ({where})"
        with self._wrap_errors("update", table):
            cursor = self._get_connection().execute(
                query, (*row.values(), record_id, *params)
            )
        return cursor.rowcount

    def soft_delete(self, table: str, record_id: int, entity: str | None = None) -> None:
        """Mark a record as deleted without removing it.

        Raises:
            NotFoundError: If the record is missing or already deleted.
        """
        changed = self.update(table, record_id, {"deleted_at": format_timestamp(self.now())})
        if changed == 0:
            raise NotFoundError(entity or table, record_id)
        logger.debug(f"Soft-deleted {table} record {record_id}")

    def execute_raw(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute an arbitrary statement (pragmas, index setup, reports)."""
        with self._wrap_errors("execute_raw"):
            return self._get_connection().execute(sql, tuple(params))

    def schema_objects(self, object_type: str = "table") -> set[str]:
        """Names of user-defined schema objects of the given type."""
        cursor = self.execute_raw(
            "SELECT name FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'",
            (object_type,),
        )
        return {row[0] for row in cursor.fetchall()}

    # ==========================================================================
    # Migrations - delegate to migrations module
    # ==========================================================================

    def apply_migrations(self) -> list[str]:
        """Apply every pending migration in declaration order."""
        return migrations.apply_migrations(self)

    def rollback_migration(self, version: str) -> LedgerEntry:
        """Roll back a single applied migration."""
        return migrations.rollback_migration(self, version)

    def get_applied_migrations(self) -> list[LedgerEntry]:
        """Get ledger entries for applied migrations."""
        return migrations.get_applied_migrations(self)

    # ==========================================================================
    # Session operations - delegate to sessions module
    # ==========================================================================

    def start_session(self, child_id: int) -> Session:
        """Open a new session for a child."""
        return sessions.start_session(self, child_id)

    def end_session(self, session_id: int, summary_text: str) -> Session:
        """Close an open session."""
        return sessions.end_session(self, session_id, summary_text)

    def get_active_session(self, child_id: int) -> Session | None:
        """Get the child's open session, if any."""
        return sessions.get_active_session(self, child_id)

    def get_session(self, session_id: int) -> Session:
        """Get a session with its child and activities attached."""
        return sessions.get_session(self, session_id)

    # ==========================================================================
    # Activity instance operations - delegate to activities module
    # ==========================================================================

    def start_activity(
        self, session_id: int, activity_def_id: int, notes: str = ""
    ) -> ActivityInstance:
        """Start an activity instance inside a session."""
        return activities.start_activity(self, session_id, activity_def_id, notes)

    def end_activity(self, instance_id: int, notes: str) -> ActivityInstance:
        """End a running activity instance."""
        return activities.end_activity(self, instance_id, notes)

    def update_activity_notes(self, instance_id: int, notes: str) -> ActivityInstance:
        """Overwrite an activity instance's notes."""
        return activities.update_activity_notes(self, instance_id, notes)

    def list_active_activities(self, session_id: int) -> list[ActivityInstance]:
        """Get running activity instances in a session."""
        return activities.list_active_activities(self, session_id)

    def auto_close_activities(self, session_id: int, max_duration_minutes: int) -> AutoCloseResult:
        """Close running activity instances older than the threshold."""
        return activities.auto_close_activities(self, session_id, max_duration_minutes)
