"""Schema migration ledger for the record store.

Migrations are a static, ordered table of steps. Each step has a forward and
a reverse action and is recorded in the ``schema_migrations`` ledger when
applied. The applier walks the table in declaration order at startup; a step
already present in the ledger is skipped, so re-running is safe.

Each step's forward action and its ledger insert share one transaction: a
failing step leaves no ledger entry and no partial schema change behind.
Forward actions only use ``IF NOT EXISTS`` DDL and reverse actions only
``IF EXISTS`` DDL, so a manual retry after an interrupted run is harmless.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from child_sessions.constants import TABLE_MIGRATIONS
from child_sessions.exceptions import (
    MigrationError,
    MigrationNotAppliedError,
    MigrationNotFoundError,
    MigrationOrderError,
    StorageError,
)
from child_sessions.store import schema
from child_sessions.store.models import LedgerEntry, format_timestamp

if TYPE_CHECKING:
    from child_sessions.store.core import RecordStore

logger = logging.getLogger(__name__)

MigrationAction = Callable[[sqlite3.Connection], None]


@dataclass(frozen=True)
class MigrationStep:
    """A named, versioned pair of schema-change actions.

    Versions sort lexicographically in the order they must be applied.
    """

    version: str
    description: str
    forward: MigrationAction
    reverse: MigrationAction


# =============================================================================
# Step actions
# =============================================================================


def _create_tables(conn: sqlite3.Connection, tables: Sequence[tuple[str, str]]) -> None:
    for _name, ddl in tables:
        conn.execute(ddl)


def _drop_tables(conn: sqlite3.Connection, tables: Sequence[tuple[str, str]]) -> None:
    # Reverse order so referencing tables go before the tables they reference
    for name, _ddl in reversed(tables):
        conn.execute(f"DROP TABLE IF EXISTS {name}")


def _migration_001_up(conn: sqlite3.Connection) -> None:
    _create_tables(conn, schema.BASE_TABLES)


def _migration_001_down(conn: sqlite3.Connection) -> None:
    _drop_tables(conn, schema.BASE_TABLES)


def _migration_002_up(conn: sqlite3.Connection) -> None:
    _create_tables(conn, schema.NOTE_TABLES)


def _migration_002_down(conn: sqlite3.Connection) -> None:
    _drop_tables(conn, schema.NOTE_TABLES)


def _migration_003_up(conn: sqlite3.Connection) -> None:
    _create_tables(conn, schema.REWARD_TABLES)


def _migration_003_down(conn: sqlite3.Connection) -> None:
    _drop_tables(conn, schema.REWARD_TABLES)


def _migration_004_up(conn: sqlite3.Connection) -> None:
    _create_tables(conn, schema.FLASHCARD_TABLES)


def _migration_004_down(conn: sqlite3.Connection) -> None:
    _drop_tables(conn, schema.FLASHCARD_TABLES)


def _migration_005_up(conn: sqlite3.Connection) -> None:
    for index_name, table, columns in schema.LOOKUP_INDEXES:
        conn.execute(f"CREATE INDEX IF NOT EXISTS {index_name} ON {table}({columns})")


def _migration_005_down(conn: sqlite3.Connection) -> None:
    for index_name, _table, _columns in schema.LOOKUP_INDEXES:
        conn.execute(f"DROP INDEX IF EXISTS {index_name}")


def _migration_006_up(conn: sqlite3.Connection) -> None:
    cursor = conn.execute(schema.CLOSE_DUPLICATE_OPEN_SESSIONS_SQL)
    if cursor.rowcount > 0:
        logger.warning(
            f"Closed {cursor.rowcount} duplicate open sessions before enforcing "
            "one open session per child"
        )
    conn.execute(schema.OPEN_SESSION_INDEX_SQL)


def _migration_006_down(conn: sqlite3.Connection) -> None:
    conn.execute(f"DROP INDEX IF EXISTS {schema.OPEN_SESSION_INDEX}")


MIGRATIONS: tuple[MigrationStep, ...] = (
    MigrationStep(
        "001_create_base_tables",
        "Create base tables for children, sessions, activities",
        _migration_001_up,
        _migration_001_down,
    ),
    MigrationStep(
        "002_create_notes_and_templates",
        "Create notes and note templates tables",
        _migration_002_up,
        _migration_002_down,
    ),
    MigrationStep(
        "003_create_rewards_and_goals",
        "Create rewards and goals tables",
        _migration_003_up,
        _migration_003_down,
    ),
    MigrationStep(
        "004_create_flashcards",
        "Create flashcards and session flashcards tables",
        _migration_004_up,
        _migration_004_down,
    ),
    MigrationStep(
        "005_add_indexes_and_constraints",
        "Add lookup indexes for performance",
        _migration_005_up,
        _migration_005_down,
    ),
    MigrationStep(
        "006_single_open_session_per_child",
        "Enforce at most one open session per child",
        _migration_006_up,
        _migration_006_down,
    ),
)


def get_migrations() -> tuple[MigrationStep, ...]:
    """Get all available migrations.

    Returns:
        Migration steps in the order they must be applied.
    """
    return MIGRATIONS


# =============================================================================
# Ledger
# =============================================================================


def validate_migration_order(steps: Sequence[MigrationStep]) -> None:
    """Check that versions are unique and strictly ascending.

    Raises:
        MigrationOrderError: On a duplicate or out-of-order version.
    """
    previous: str | None = None
    for step in steps:
        if previous is not None and step.version <= previous:
            reason = "Duplicate" if step.version == previous else "Out-of-order"
            raise MigrationOrderError(
                f"{reason} migration version after {previous}", version=step.version
            )
        previous = step.version


def ensure_ledger(store: RecordStore) -> None:
    """Create the ledger table if it does not exist yet."""
    store.execute_raw(schema.LEDGER_SQL)


def _find_entry(conn: sqlite3.Connection, version: str) -> LedgerEntry | None:
    row = conn.execute(
        f"SELECT * FROM {TABLE_MIGRATIONS} WHERE version = ?", (version,)
    ).fetchone()
    return LedgerEntry.from_row(row) if row else None


def get_applied_migrations(store: RecordStore) -> list[LedgerEntry]:
    """Get ledger entries for every applied migration, ordered by version.

    Read-only: a database without a ledger table has no applied migrations.
    """
    if TABLE_MIGRATIONS not in store.schema_objects("table"):
        return []
    cursor = store.execute_raw(f"SELECT * FROM {TABLE_MIGRATIONS} ORDER BY version")
    return [LedgerEntry.from_row(row) for row in cursor.fetchall()]


def get_migration_status(
    store: RecordStore, steps: Sequence[MigrationStep] | None = None
) -> list[tuple[MigrationStep, LedgerEntry | None]]:
    """Pair every declared step with its ledger entry (None when pending)."""
    applied = {entry.version: entry for entry in get_applied_migrations(store)}
    return [(step, applied.get(step.version)) for step in (steps or get_migrations())]


def get_pending_migrations(
    store: RecordStore, steps: Sequence[MigrationStep] | None = None
) -> list[MigrationStep]:
    """Get declared steps that have no ledger entry yet."""
    return [step for step, entry in get_migration_status(store, steps) if entry is None]


def apply_migrations(
    store: RecordStore, steps: Sequence[MigrationStep] | None = None
) -> list[str]:
    """Apply every unapplied migration in declaration order.

    Stops at the first failure. Steps before it stay applied and recorded;
    the failing step is rolled back and not recorded; later steps are not
    attempted.

    Args:
        store: The RecordStore instance.
        steps: Migration steps (defaults to ``get_migrations()``).

    Returns:
        Versions applied by this call (empty when already up to date).

    Raises:
        MigrationOrderError: If the step list is not strictly ascending.
        MigrationError: If a forward action or its ledger insert fails.
    """
    steps = tuple(get_migrations() if steps is None else steps)
    validate_migration_order(steps)
    try:
        ensure_ledger(store)
    except StorageError as e:
        logger.error(f"Could not create the migration ledger: {e}")
        raise MigrationError("Could not create the migration ledger", cause=e) from e

    applied: list[str] = []
    for step in steps:
        ran = False
        try:
            with store.transaction() as conn:
                if _find_entry(conn, step.version) is not None:
                    logger.debug(f"Migration {step.version} already applied, skipping")
                else:
                    logger.info(f"Running migration: {step.version} - {step.description}")
                    step.forward(conn)
                    conn.execute(
                        f"INSERT INTO {TABLE_MIGRATIONS} (version, description, applied_at) "
                        "VALUES (?, ?, ?)",
                        (step.version, step.description, format_timestamp(store.now())),
                    )
                    ran = True
        except Exception as e:
            logger.error(f"Migration {step.version} failed: {e}", exc_info=True)
            raise MigrationError("Migration failed", version=step.version, cause=e) from e

        if ran:
            applied.append(step.version)
            logger.info(f"Migration {step.version} completed successfully")

    if not applied:
        logger.debug("Schema is up to date")
    return applied


def rollback_migration(
    store: RecordStore, version: str, steps: Sequence[MigrationStep] | None = None
) -> LedgerEntry:
    """Roll back a single applied migration.

    Runs the step's reverse action and removes its ledger entry in one
    transaction. Later migrations that depend on this one are not checked.

    Args:
        store: The RecordStore instance.
        version: Version to roll back.
        steps: Migration steps (defaults to ``get_migrations()``).

    Returns:
        The ledger entry that was removed.

    Raises:
        MigrationNotFoundError: If the version is not declared.
        MigrationNotAppliedError: If the version has no ledger entry.
        MigrationError: If the reverse action fails.
    """
    steps = tuple(get_migrations() if steps is None else steps)
    step = next((s for s in steps if s.version == version), None)
    if step is None:
        raise MigrationNotFoundError(version)
    if TABLE_MIGRATIONS not in store.schema_objects("table"):
        raise MigrationNotAppliedError(version)

    with store.transaction() as conn:
        entry = _find_entry(conn, version)
        if entry is None:
            raise MigrationNotAppliedError(version)

        logger.info(f"Rolling back migration: {step.version} - {step.description}")
        try:
            step.reverse(conn)
            conn.execute(f"DELETE FROM {TABLE_MIGRATIONS} WHERE version = ?", (version,))
        except Exception as e:
            logger.error(f"Rollback of migration {version} failed: {e}", exc_info=True)
            raise MigrationError("Migration rollback failed", version=version, cause=e) from e

    logger.info(f"Migration {version} rolled back successfully")
    return entry
