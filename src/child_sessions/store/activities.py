"""Activity operations for the record store.

Functions for managing activity definitions (reference data) and the activity
instances that run inside a session.

An instance is Running while ``end_time`` is NULL and Ended once it is set.
Every write that ends an instance is guarded with ``end_time IS NULL``, so an
end time is never overwritten.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from child_sessions.constants import (
    AUTO_CLOSE_NOTE_TEMPLATE,
    AUTO_CLOSE_SKIP_ALREADY_ENDED,
    AUTO_CLOSE_SKIP_NOT_FOUND,
    ENTITY_ACTIVITY_DEFINITION,
    ENTITY_ACTIVITY_INSTANCE,
    ENTITY_SESSION,
    TABLE_ACTIVITY_DEFINITIONS,
    TABLE_ACTIVITY_INSTANCES,
)
from child_sessions.exceptions import (
    ConflictError,
    ConstraintViolationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from child_sessions.store.models import (
    ActivityDefinition,
    ActivityInstance,
    AutoCloseResult,
    SkippedInstance,
    format_timestamp,
)
from child_sessions.store.sessions import load_session

if TYPE_CHECKING:
    from child_sessions.store.core import RecordStore

logger = logging.getLogger(__name__)

_DEFINITION_FIELDS = ("name", "description", "default_duration_minutes", "category", "objectives")


# =============================================================================
# Activity definitions
# =============================================================================


def _validate_definition_fields(values: dict[str, Any]) -> dict[str, Any]:
    if "name" in values:
        name = values["name"]
        if not name or not str(name).strip():
            raise ValidationError("Activity name is required", field="name", value=name)
        values["name"] = str(name).strip()
    if "default_duration_minutes" in values:
        duration = values["default_duration_minutes"]
        if not isinstance(duration, int) or duration < 0:
            raise ValidationError(
                "Invalid default duration",
                field="default_duration_minutes",
                value=duration,
                expected="non-negative integer",
            )
    return values


def create_activity_definition(
    store: RecordStore,
    name: str,
    description: str = "",
    default_duration_minutes: int = 0,
    category: str = "",
    objectives: str = "",
) -> ActivityDefinition:
    """Create a reusable activity definition.

    Raises:
        ValidationError: If the name is blank or the duration is negative.
        ConflictError: If a definition with the same name exists (including
            soft-deleted ones).
    """
    values = _validate_definition_fields(
        {"name": name, "default_duration_minutes": default_duration_minutes}
    )
    definition = ActivityDefinition(
        name=values["name"],
        description=description,
        default_duration_minutes=default_duration_minutes,
        category=category,
        objectives=objectives,
    )
    try:
        definition_id = store.insert(TABLE_ACTIVITY_DEFINITIONS, definition.to_row())
    except ConstraintViolationError as e:
        raise ConflictError(
            "Activity definition name already exists", entity=ENTITY_ACTIVITY_DEFINITION
        ) from e

    logger.debug(f"Created activity definition {definition_id}: {definition.name}")
    return get_activity_definition(store, definition_id)


def get_activity_definition(
    store: RecordStore, definition_id: int, include_deleted: bool = False
) -> ActivityDefinition:
    """Get an activity definition by ID.

    Raises:
        NotFoundError: If the definition does not exist (or is soft-deleted
            and ``include_deleted`` is False).
    """
    row = store.find_by_id(
        TABLE_ACTIVITY_DEFINITIONS,
        definition_id,
        include_deleted=include_deleted,
        entity=ENTITY_ACTIVITY_DEFINITION,
    )
    return ActivityDefinition.from_row(row)


def list_activity_definitions(
    store: RecordStore, category: str | None = None
) -> list[ActivityDefinition]:
    """Get live activity definitions ordered by name, optionally by category."""
    if category:
        rows = store.find_where(
            TABLE_ACTIVITY_DEFINITIONS, "category = ?", (category,), order_by="name"
        )
    else:
        rows = store.find_where(TABLE_ACTIVITY_DEFINITIONS, order_by="name")
    return [ActivityDefinition.from_row(row) for row in rows]


def update_activity_definition(
    store: RecordStore, definition_id: int, **fields: Any
) -> ActivityDefinition:
    """Update an activity definition.

    Accepts name, description, default_duration_minutes, category and objectives.
    """
    unknown = set(fields) - set(_DEFINITION_FIELDS)
    if unknown:
        raise ValidationError("Unknown activity definition field", field=sorted(unknown)[0])

    values = _validate_definition_fields(dict(fields))
    get_activity_definition(store, definition_id)
    if values:
        try:
            store.update(TABLE_ACTIVITY_DEFINITIONS, definition_id, values)
        except ConstraintViolationError as e:
            raise ConflictError(
                "Activity definition name already exists",
                entity=ENTITY_ACTIVITY_DEFINITION,
                entity_id=definition_id,
            ) from e
    return get_activity_definition(store, definition_id)


def delete_activity_definition(store: RecordStore, definition_id: int) -> None:
    """Soft-delete an activity definition. Existing instances keep their reference."""
    store.soft_delete(TABLE_ACTIVITY_DEFINITIONS, definition_id, entity=ENTITY_ACTIVITY_DEFINITION)
    logger.info(f"Deleted activity definition {definition_id}")


# =============================================================================
# Activity instances
# =============================================================================


def _attach_definitions(
    store: RecordStore, instances: list[ActivityInstance]
) -> list[ActivityInstance]:
    cache: dict[int, ActivityDefinition] = {}
    for instance in instances:
        if instance.activity_def_id not in cache:
            # Deleted definitions still describe the instances recorded against them
            cache[instance.activity_def_id] = get_activity_definition(
                store, instance.activity_def_id, include_deleted=True
            )
        instance.activity = cache[instance.activity_def_id]
    return instances


def _load_instance(store: RecordStore, instance_id: int) -> ActivityInstance:
    row = store.find_by_id(TABLE_ACTIVITY_INSTANCES, instance_id, entity=ENTITY_ACTIVITY_INSTANCE)
    return ActivityInstance.from_row(row)


def get_activity_instance(store: RecordStore, instance_id: int) -> ActivityInstance:
    """Get an activity instance with its definition attached.

    Raises:
        NotFoundError: If the instance does not exist or is soft-deleted.
    """
    return _attach_definitions(store, [_load_instance(store, instance_id)])[0]


def start_activity(
    store: RecordStore, session_id: int, activity_def_id: int, notes: str = ""
) -> ActivityInstance:
    """Start a new activity instance inside a session.

    Args:
        store: The RecordStore instance.
        session_id: Session to record the activity in.
        activity_def_id: Activity definition being performed.
        notes: Initial notes.

    Returns:
        The running ActivityInstance with its definition attached.

    Raises:
        NotFoundError: If the session or the definition does not exist.
        ConflictError: If the session has already ended.
    """
    with store.transaction():
        session = load_session(store, session_id)
        if not session.is_open:
            raise ConflictError(
                "Cannot start an activity in an ended session", ENTITY_SESSION, session_id
            )
        get_activity_definition(store, activity_def_id)

        instance = ActivityInstance(
            session_id=session_id,
            activity_def_id=activity_def_id,
            start_time=store.now(),
            notes=notes,
        )
        instance_id = store.insert(TABLE_ACTIVITY_INSTANCES, instance.to_row())

    logger.info(f"Started activity {activity_def_id} in session {session_id} (instance {instance_id})")
    return get_activity_instance(store, instance_id)


def end_activity(store: RecordStore, instance_id: int, notes: str) -> ActivityInstance:
    """End a running activity instance, replacing its notes.

    Raises:
        NotFoundError: If the instance does not exist or is soft-deleted.
        ConflictError: If the instance has already ended.
    """
    with store.transaction():
        instance = _load_instance(store, instance_id)
        if not instance.is_running:
            raise ConflictError("Activity has already ended", ENTITY_ACTIVITY_INSTANCE, instance_id)

        changed = store.update(
            TABLE_ACTIVITY_INSTANCES,
            instance_id,
            {"end_time": format_timestamp(store.now()), "notes": notes},
            where="end_time IS NULL",
        )
        if changed == 0:
            raise ConflictError("Activity has already ended", ENTITY_ACTIVITY_INSTANCE, instance_id)

    logger.info(f"Ended activity instance {instance_id}")
    return get_activity_instance(store, instance_id)


def update_activity_notes(store: RecordStore, instance_id: int, notes: str) -> ActivityInstance:
    """Overwrite an instance's notes. Allowed whether running or ended."""
    _load_instance(store, instance_id)
    store.update(TABLE_ACTIVITY_INSTANCES, instance_id, {"notes": notes})
    return get_activity_instance(store, instance_id)


def list_active_activities(store: RecordStore, session_id: int) -> list[ActivityInstance]:
    """Get the running instances of a session, oldest first."""
    rows = store.find_where(
        TABLE_ACTIVITY_INSTANCES,
        "session_id = ? AND end_time IS NULL",
        (session_id,),
        order_by="start_time, id",
    )
    return _attach_definitions(store, [ActivityInstance.from_row(row) for row in rows])


def list_session_activities(store: RecordStore, session_id: int) -> list[ActivityInstance]:
    """Get every instance of a session, running or ended, oldest first."""
    rows = store.find_where(
        TABLE_ACTIVITY_INSTANCES, "session_id = ?", (session_id,), order_by="start_time, id"
    )
    return _attach_definitions(store, [ActivityInstance.from_row(row) for row in rows])


def get_activity_history_by_child(store: RecordStore, child_id: int) -> list[ActivityInstance]:
    """Get every instance across a child's sessions, newest first."""
    cursor = store.execute_raw(
        f"""
        SELECT ai.* FROM {TABLE_ACTIVITY_INSTANCES} ai
        JOIN sessions s ON s.id = ai.session_id
        WHERE s.child_id = ?
          AND ai.deleted_at IS NULL
          AND s.deleted_at IS NULL
        ORDER BY ai.start_time DESC, ai.id DESC
        """,
        (child_id,),
    )
    return _attach_definitions(store, [ActivityInstance.from_row(row) for row in cursor.fetchall()])


def _auto_close_notes(notes: str, max_duration_minutes: int) -> str:
    marker = AUTO_CLOSE_NOTE_TEMPLATE.format(minutes=max_duration_minutes)
    return f"{notes} {marker}" if notes else marker


def auto_close_activities(
    store: RecordStore, session_id: int, max_duration_minutes: int
) -> AutoCloseResult:
    """Close running instances that started more than N minutes ago.

    Selects instances of the session with ``end_time IS NULL`` and a start
    time strictly before ``now - max_duration_minutes``. Each one is closed in
    its own transaction: ``end_time`` is set to now and an auto-close marker
    naming the threshold is appended to the existing notes.

    The sweep is best-effort. An instance that cannot be written is logged and
    reported in ``skipped``; the rest of the batch carries on.

    Args:
        store: The RecordStore instance.
        session_id: Session to sweep (open or closed).
        max_duration_minutes: Age threshold in minutes.

    Returns:
        AutoCloseResult with the closed instances and any skipped ones.

    Raises:
        ValidationError: If the threshold is negative.
        NotFoundError: If the session does not exist or is soft-deleted.
    """
    if max_duration_minutes < 0:
        raise ValidationError(
            "Invalid auto-close threshold",
            field="max_duration_minutes",
            value=max_duration_minutes,
            expected="non-negative integer",
        )
    load_session(store, session_id)

    now = store.now()
    cutoff = now - timedelta(minutes=max_duration_minutes)
    rows = store.find_where(
        TABLE_ACTIVITY_INSTANCES,
        "session_id = ? AND end_time IS NULL AND start_time < ?",
        (session_id, format_timestamp(cutoff)),
        order_by="start_time, id",
    )

    result = AutoCloseResult(session_id=session_id, max_duration_minutes=max_duration_minutes)
    for row in rows:
        instance_id = row["id"]
        try:
            with store.transaction():
                current = _load_instance(store, instance_id)
                changed = 0
                if current.is_running:
                    changed = store.update(
                        TABLE_ACTIVITY_INSTANCES,
                        instance_id,
                        {
                            "end_time": format_timestamp(now),
                            "notes": _auto_close_notes(current.notes, max_duration_minutes),
                        },
                        where="end_time IS NULL",
                    )
        except NotFoundError:
            logger.debug(f"Activity instance {instance_id} was deleted before auto-close")
            result.skipped.append(SkippedInstance(instance_id, AUTO_CLOSE_SKIP_NOT_FOUND))
            continue
        except StorageError as e:
            logger.warning(f"Failed to auto-close activity instance {instance_id}: {e}")
            result.skipped.append(SkippedInstance(instance_id, str(e)))
            continue

        if changed == 0:
            logger.debug(f"Activity instance {instance_id} ended before auto-close")
            result.skipped.append(SkippedInstance(instance_id, AUTO_CLOSE_SKIP_ALREADY_ENDED))
            continue

        result.closed.append(_load_instance(store, instance_id))

    _attach_definitions(store, result.closed)
    if result.closed or result.skipped:
        logger.info(
            f"Auto-closed {len(result.closed)} activities in session {session_id} "
            f"(threshold {max_duration_minutes} min, skipped {len(result.skipped)})"
        )
    return result
