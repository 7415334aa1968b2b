"""Default reference data for a fresh database.

Each table is seeded only while it is completely empty. Soft-deleted rows
count, so a user who deletes a default keeps it deleted across restarts.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from child_sessions.constants import TABLE_ACTIVITY_DEFINITIONS, TABLE_NOTE_TEMPLATES
from child_sessions.store.activities import create_activity_definition

if TYPE_CHECKING:
    from child_sessions.store.core import RecordStore

logger = logging.getLogger(__name__)

# (name, description, default_duration_minutes, category)
DEFAULT_ACTIVITIES: Final[tuple[tuple[str, str, int, str], ...]] = (
    ("Speech Therapy", "Exercises for speech and language skills", 30, "Speech"),
    ("Play Therapy", "Guided play to build social and emotional skills", 45, "Social"),
    ("Fine Motor Practice", "Hand and finger coordination exercises", 20, "Motor"),
    ("Gross Motor Practice", "Whole-body movement and balance exercises", 30, "Motor"),
    ("Concentration Practice", "Activities that build attention and focus", 25, "Cognitive"),
)

# (template_text, category_hint, keywords)
DEFAULT_NOTE_TEMPLATES: Final[tuple[tuple[str, str, str], ...]] = (
    ("Child shows enthusiasm for the activity", "Positive", "enthusiasm,interest,happy"),
    ("Child has difficulty following instructions", "Challenge", "difficulty,instructions,focus"),
    ("Child interacts well with the therapist", "Social", "interaction,social,communication"),
    ("Child shows progress in motor skills", "Progress", "progress,motor,improvement"),
    ("Child needs extra help", "Support", "help,support,assistance"),
)


def _seed_activities(store: RecordStore) -> int:
    if store.count(TABLE_ACTIVITY_DEFINITIONS, include_deleted=True) > 0:
        return 0
    for name, description, duration, category in DEFAULT_ACTIVITIES:
        create_activity_definition(
            store,
            name,
            description=description,
            default_duration_minutes=duration,
            category=category,
        )
    return len(DEFAULT_ACTIVITIES)


def _seed_note_templates(store: RecordStore) -> int:
    if store.count(TABLE_NOTE_TEMPLATES, include_deleted=True) > 0:
        return 0
    for template_text, category_hint, keywords in DEFAULT_NOTE_TEMPLATES:
        store.insert(
            TABLE_NOTE_TEMPLATES,
            {"template_text": template_text, "category_hint": category_hint, "keywords": keywords},
        )
    return len(DEFAULT_NOTE_TEMPLATES)


def seed_defaults(store: RecordStore) -> dict[str, int]:
    """Insert default activity definitions and note templates.

    Each table is seeded in its own transaction.

    Returns:
        Number of rows inserted per table (0 when the table already had rows).
    """
    counts: dict[str, int] = {}
    with store.transaction():
        counts[TABLE_ACTIVITY_DEFINITIONS] = _seed_activities(store)
    with store.transaction():
        counts[TABLE_NOTE_TEMPLATES] = _seed_note_templates(store)

    seeded = {table: n for table, n in counts.items() if n}
    if seeded:
        logger.info(f"Seeded default data: {seeded}")
    return counts
