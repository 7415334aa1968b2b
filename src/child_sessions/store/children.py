"""Child operations for the record store.

Functions for creating, retrieving, updating and soft-deleting children.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from child_sessions.constants import ENTITY_CHILD, TABLE_CHILDREN
from child_sessions.exceptions import ValidationError
from child_sessions.store.models import Child

if TYPE_CHECKING:
    from child_sessions.store.core import RecordStore

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "gender", "guardian_name", "contact_info", "assessment_text")


def _parse_date_of_birth(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    if not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError(
            "Invalid date of birth",
            field="date_of_birth",
            value=value,
            expected="YYYY-MM-DD",
        ) from e


def _require_name(name: str) -> str:
    if not name or not name.strip():
        raise ValidationError("Child name is required", field="name", value=name)
    return name.strip()


def create_child(
    store: RecordStore,
    name: str,
    gender: str = "",
    guardian_name: str = "",
    contact_info: str = "",
    assessment_text: str = "",
    date_of_birth: date | str | None = None,
) -> Child:
    """Create a new child record.

    Raises:
        ValidationError: If the name is blank or the date of birth cannot be parsed.
    """
    child = Child(
        name=_require_name(name),
        date_of_birth=_parse_date_of_birth(date_of_birth),
        gender=gender,
        guardian_name=guardian_name,
        contact_info=contact_info,
        assessment_text=assessment_text,
    )
    child_id = store.insert(TABLE_CHILDREN, child.to_row())
    logger.debug(f"Created child {child_id}")
    return get_child(store, child_id)


def get_child(store: RecordStore, child_id: int) -> Child:
    """Get a live child by ID.

    Raises:
        NotFoundError: If the child does not exist or is soft-deleted.
    """
    return Child.from_row(store.find_by_id(TABLE_CHILDREN, child_id, entity=ENTITY_CHILD))


def list_children(store: RecordStore) -> list[Child]:
    """Get all live children ordered by name."""
    rows = store.find_where(TABLE_CHILDREN, order_by="name COLLATE NOCASE, id")
    return [Child.from_row(row) for row in rows]


def update_child(store: RecordStore, child_id: int, **fields: Any) -> Child:
    """Update a child's details.

    Only name, gender, guardian_name, contact_info, assessment_text and
    date_of_birth can be changed.
    """
    unknown = set(fields) - {*_UPDATABLE_FIELDS, "date_of_birth"}
    if unknown:
        raise ValidationError("Unknown child field", field=sorted(unknown)[0])

    values: dict[str, Any] = {k: v for k, v in fields.items() if k in _UPDATABLE_FIELDS}
    if "name" in values:
        values["name"] = _require_name(values["name"])
    if "date_of_birth" in fields:
        dob = _parse_date_of_birth(fields["date_of_birth"])
        values["date_of_birth"] = dob.isoformat() if dob else None

    get_child(store, child_id)
    if values:
        store.update(TABLE_CHILDREN, child_id, values)
    return get_child(store, child_id)


def delete_child(store: RecordStore, child_id: int) -> None:
    """Soft-delete a child. Sessions and other history rows are kept."""
    store.soft_delete(TABLE_CHILDREN, child_id, entity=ENTITY_CHILD)
    logger.info(f"Deleted child {child_id}")
