"""Record store package.

Splits the persistence lifecycle layer into focused modules:
- schema.py: SQL for every migration step
- migrations.py: Migration ledger and schema applier
- models.py: Data models (Child, Session, ActivityDefinition, ActivityInstance)
- core.py: Main RecordStore class with connection management
- children.py: Child CRUD operations
- sessions.py: Session lifecycle (one open session per child)
- activities.py: Activity definitions, instances and the auto-close sweep
- seed.py: Default reference data
"""

from child_sessions.store.core import RecordStore
from child_sessions.store.migrations import MigrationStep, get_migrations
from child_sessions.store.models import (
    ActivityDefinition,
    ActivityInstance,
    AutoCloseResult,
    Child,
    LedgerEntry,
    Session,
    SessionProgress,
    SkippedInstance,
)

__all__ = [
    # Main class
    "RecordStore",
    # Migrations
    "MigrationStep",
    "get_migrations",
    # Data models
    "ActivityDefinition",
    "ActivityInstance",
    "AutoCloseResult",
    "Child",
    "LedgerEntry",
    "Session",
    "SessionProgress",
    "SkippedInstance",
]
