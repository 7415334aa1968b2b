"""Session operations for the record store.

A child has at most one open session (``end_time IS NULL``) at a time.
``start_session`` checks and inserts inside a single ``BEGIN IMMEDIATE``
transaction, and the partial unique index ``uq_sessions_open_per_child``
rejects any insert that slips past the check from another process; both
surface as ConflictError.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from child_sessions.constants import (
    ENTITY_CHILD,
    ENTITY_SESSION,
    TABLE_CHILDREN,
    TABLE_SESSIONS,
)
from child_sessions.exceptions import ConflictError, ConstraintViolationError, NotFoundError
from child_sessions.store.models import (
    Child,
    Session,
    SessionProgress,
    format_timestamp,
    minutes_between,
)

if TYPE_CHECKING:
    from child_sessions.store.core import RecordStore

logger = logging.getLogger(__name__)


def _attach_child(store: RecordStore, session: Session) -> Session:
    # Soft-deleted children still belong to their historical sessions
    row = store.find_by_id(TABLE_CHILDREN, session.child_id, include_deleted=True, entity=ENTITY_CHILD)
    session.child = Child.from_row(row)
    return session


def _find_open_session_row(store: RecordStore, child_id: int) -> sqlite3.Row | None:
    rows = store.find_where(
        TABLE_SESSIONS,
        "child_id = ? AND end_time IS NULL",
        (child_id,),
        order_by="start_time DESC, id DESC",
        limit=1,
    )
    return rows[0] if rows else None


def load_session(store: RecordStore, session_id: int) -> Session:
    """Get a live session by ID without relations.

    Raises:
        NotFoundError: If the session does not exist or is soft-deleted.
    """
    return Session.from_row(store.find_by_id(TABLE_SESSIONS, session_id, entity=ENTITY_SESSION))


def start_session(store: RecordStore, child_id: int) -> Session:
    """Open a new session for a child.

    Args:
        store: The RecordStore instance.
        child_id: Child the session belongs to.

    Returns:
        The created Session with its child attached.

    Raises:
        NotFoundError: If the child does not exist or is soft-deleted.
        ConflictError: If the child already has an open session.
    """
    try:
        with store.transaction():
            store.find_by_id(TABLE_CHILDREN, child_id, entity=ENTITY_CHILD)
            open_row = _find_open_session_row(store, child_id)
            if open_row is not None:
                raise ConflictError(
                    "An active session already exists for this child",
                    entity=ENTITY_SESSION,
                    entity_id=open_row["id"],
                )
            session = Session(child_id=child_id, start_time=store.now())
            session_id = store.insert(TABLE_SESSIONS, session.to_row())
    except ConstraintViolationError as e:
        logger.debug(f"Concurrent session start detected for child {child_id}: {e}")
        raise ConflictError(
            "An active session already exists for this child", entity=ENTITY_SESSION
        ) from e

    logger.info(f"Started session {session_id} for child {child_id}")
    return _attach_child(store, load_session(store, session_id))


def end_session(store: RecordStore, session_id: int, summary_text: str) -> Session:
    """Close an open session.

    Sets the end time, computes ``duration_minutes`` (whole minutes, rounded
    down) and stores the summary text verbatim. Duration is never recomputed
    afterwards.

    Raises:
        NotFoundError: If the session does not exist or is soft-deleted.
        ConflictError: If the session has already ended.
    """
    with store.transaction():
        session = load_session(store, session_id)
        if not session.is_open:
            raise ConflictError("Session has already ended", ENTITY_SESSION, session_id)

        end_time = store.now()
        duration = max(0, minutes_between(session.start_time, end_time))
        changed = store.update(
            TABLE_SESSIONS,
            session_id,
            {
                "end_time": format_timestamp(end_time),
                "duration_minutes": duration,
                "summary_text": summary_text,
            },
            where="end_time IS NULL",
        )
        if changed == 0:
            raise ConflictError("Session has already ended", ENTITY_SESSION, session_id)

    logger.info(f"Ended session {session_id} after {duration} minutes")
    return load_session(store, session_id)


def get_active_session(store: RecordStore, child_id: int) -> Session | None:
    """Get the open session for a child.

    Returns:
        The open Session with its child attached, or None when the child has
        no active session.
    """
    row = _find_open_session_row(store, child_id)
    if row is None:
        return None
    return _attach_child(store, Session.from_row(row))


def get_session(store: RecordStore, session_id: int) -> Session:
    """Get a session with its child and activity instances attached."""
    # Import here to avoid circular imports
    from child_sessions.store.activities import list_session_activities

    session = _attach_child(store, load_session(store, session_id))
    session.activities = list_session_activities(store, session_id)
    return session


def get_sessions_by_child(store: RecordStore, child_id: int) -> list[Session]:
    """Get every live session of a child, newest first."""
    rows = store.find_where(
        TABLE_SESSIONS, "child_id = ?", (child_id,), order_by="start_time DESC, id DESC"
    )
    return [Session.from_row(row) for row in rows]


def update_session_summary(store: RecordStore, session_id: int, summary_text: str) -> Session:
    """Replace a session's summary text.

    Allowed on open and closed sessions. ``duration_minutes`` is left as is.
    """
    load_session(store, session_id)
    store.update(TABLE_SESSIONS, session_id, {"summary_text": summary_text})
    logger.debug(f"Updated session {session_id} summary")
    return load_session(store, session_id)


def is_session_active(store: RecordStore, session_id: int) -> bool:
    """Check whether a session exists and is still open."""
    try:
        return load_session(store, session_id).is_open
    except NotFoundError:
        return False


def get_session_progress(store: RecordStore, session_id: int) -> SessionProgress:
    """Summarize a session's progress as of now.

    Open sessions measure elapsed time up to now; closed sessions up to their
    end time. Activity minutes only count ended instances.
    """
    session = get_session(store, session_id)
    as_of = store.now()
    until = session.end_time or as_of
    ended = [a for a in session.activities if not a.is_running]

    return SessionProgress(
        session_id=session_id,
        child_name=session.child.name if session.child else "",
        is_active=session.is_open,
        elapsed_minutes=max(0, minutes_between(session.start_time, until)),
        total_activities=len(session.activities),
        running_activities=len(session.activities) - len(ended),
        ended_activities=len(ended),
        total_activity_minutes=sum(a.duration_minutes or 0 for a in ended),
        session_start=session.start_time,
        as_of=as_of,
    )
