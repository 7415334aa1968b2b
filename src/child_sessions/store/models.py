"""Data models for the record store.

Dataclasses representing children, sessions, activity definitions, activity
instances and migration ledger entries, plus the result types returned by the
lifecycle operations.

Every persisted entity carries a ``RecordAudit`` (created/updated/deleted
timestamps) as a field rather than inheriting it from a base class.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


def format_timestamp(value: datetime | None) -> str | None:
    """Serialize a timestamp for storage.

    Microseconds are always written so stored values have a fixed width and
    compare correctly as text.
    """
    return value.isoformat(timespec="microseconds") if value else None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp."""
    return datetime.fromisoformat(value) if value else None


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed between two timestamps, rounded down."""
    return int((end - start).total_seconds() // 60)


@dataclass
class RecordAudit:
    """Bookkeeping timestamps shared by every persisted record."""

    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_row(self) -> dict[str, Any]:
        """Convert to database columns."""
        return {
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "deleted_at": format_timestamp(self.deleted_at),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "RecordAudit":
        """Create from database row."""
        return cls(
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            deleted_at=parse_timestamp(row["deleted_at"]),
        )


@dataclass
class Child:
    """A child (therapy subject)."""

    id: int | None = None
    name: str = ""
    date_of_birth: date | None = None
    gender: str = ""
    guardian_name: str = ""
    contact_info: str = ""
    assessment_text: str = ""  # Initial assessment, free text
    audit: RecordAudit = field(default_factory=RecordAudit)

    def to_row(self) -> dict[str, Any]:
        """Convert to database row."""
        return {
            "name": self.name,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "gender": self.gender,
            "guardian_name": self.guardian_name,
            "contact_info": self.contact_info,
            "assessment_text": self.assessment_text,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Child":
        """Create from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            date_of_birth=date.fromisoformat(row["date_of_birth"]) if row["date_of_birth"] else None,
            gender=row["gender"] or "",
            guardian_name=row["guardian_name"] or "",
            contact_info=row["contact_info"] or "",
            assessment_text=row["assessment_text"] or "",
            audit=RecordAudit.from_row(row),
        )


@dataclass
class ActivityDefinition:
    """Reusable therapy activity (reference data, independent of sessions)."""

    id: int | None = None
    name: str = ""
    description: str = ""
    default_duration_minutes: int = 0
    category: str = ""
    objectives: str = ""
    audit: RecordAudit = field(default_factory=RecordAudit)

    def to_row(self) -> dict[str, Any]:
        """Convert to database row."""
        return {
            "name": self.name,
            "description": self.description,
            "default_duration_minutes": self.default_duration_minutes,
            "category": self.category,
            "objectives": self.objectives,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ActivityDefinition":
        """Create from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            default_duration_minutes=row["default_duration_minutes"] or 0,
            category=row["category"] or "",
            objectives=row["objectives"] or "",
            audit=RecordAudit.from_row(row),
        )


@dataclass
class ActivityInstance:
    """One occurrence of an activity inside a session.

    Running while ``end_time`` is None; once ``end_time`` is set it is never
    cleared.
    """

    id: int | None = None
    session_id: int = 0
    activity_def_id: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None
    notes: str = ""
    audit: RecordAudit = field(default_factory=RecordAudit)
    activity: ActivityDefinition | None = None  # Attached on request

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    @property
    def duration_minutes(self) -> int | None:
        """Whole minutes between start and end, or None while running."""
        if self.start_time is None or self.end_time is None:
            return None
        return minutes_between(self.start_time, self.end_time)

    def to_row(self) -> dict[str, Any]:
        """Convert to database row."""
        return {
            "session_id": self.session_id,
            "activity_def_id": self.activity_def_id,
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time),
            "notes": self.notes,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ActivityInstance":
        """Create from database row."""
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            activity_def_id=row["activity_def_id"],
            start_time=parse_timestamp(row["start_time"]),
            end_time=parse_timestamp(row["end_time"]),
            notes=row["notes"] or "",
            audit=RecordAudit.from_row(row),
        )


@dataclass
class Session:
    """A therapy session for one child.

    Open while ``end_time`` is None. ``duration_minutes`` is written once, when
    the session is ended.
    """

    id: int | None = None
    child_id: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime | None = None
    duration_minutes: int = 0
    summary_text: str = ""
    audit: RecordAudit = field(default_factory=RecordAudit)
    child: Child | None = None  # Attached on request
    activities: list[ActivityInstance] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def to_row(self) -> dict[str, Any]:
        """Convert to database row."""
        return {
            "child_id": self.child_id,
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time),
            "duration_minutes": self.duration_minutes,
            "summary_text": self.summary_text,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Session":
        """Create from database row."""
        return cls(
            id=row["id"],
            child_id=row["child_id"],
            start_time=datetime.fromisoformat(row["start_time"]),
            end_time=parse_timestamp(row["end_time"]),
            duration_minutes=row["duration_minutes"] or 0,
            summary_text=row["summary_text"] or "",
            audit=RecordAudit.from_row(row),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """A persisted record that a migration version has been applied."""

    version: str
    description: str
    applied_at: datetime
    id: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "LedgerEntry":
        """Create from database row."""
        return cls(
            id=row["id"],
            version=row["version"],
            description=row["description"] or "",
            applied_at=datetime.fromisoformat(row["applied_at"]),
        )


@dataclass(frozen=True)
class SkippedInstance:
    """An activity instance the auto-close sweep could not close."""

    instance_id: int
    reason: str


@dataclass
class AutoCloseResult:
    """Outcome of an auto-close sweep.

    The sweep is best-effort: ``closed`` holds every instance that was ended,
    ``skipped`` every instance that was selected but could not be persisted.
    """

    session_id: int
    max_duration_minutes: int
    closed: list[ActivityInstance] = field(default_factory=list)
    skipped: list[SkippedInstance] = field(default_factory=list)

    @property
    def closed_ids(self) -> list[int]:
        return [instance.id for instance in self.closed if instance.id is not None]

    @property
    def has_failures(self) -> bool:
        return bool(self.skipped)


@dataclass(frozen=True)
class SessionProgress:
    """Point-in-time progress snapshot of a session."""

    session_id: int
    child_name: str
    is_active: bool
    elapsed_minutes: int
    total_activities: int
    running_activities: int
    ended_activities: int
    total_activity_minutes: int
    session_start: datetime
    as_of: datetime
