"""Database schema for the record store.

SQL for each migration step, kept as the historical definition of that step.
Never edit a statement here once its migration has shipped; add a new
migration instead.

Every record table carries created_at / updated_at / deleted_at (soft delete).
"""

# Migration ledger (managed by migrations.py, created before any step runs)
LEDGER_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    version TEXT NOT NULL UNIQUE,
    description TEXT,
    applied_at TEXT NOT NULL
)
"""

# -----------------------------------------------------------------------------
# 001: base tables
# -----------------------------------------------------------------------------

CHILDREN_SQL = """
CREATE TABLE IF NOT EXISTS children (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    date_of_birth TEXT,
    gender TEXT,
    guardian_name TEXT,
    contact_info TEXT,
    assessment_text TEXT,  -- Initial assessment (stored in plain text)
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
)
"""

SESSIONS_SQL = """
CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    child_id INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,  -- NULL while the session is open
    duration_minutes INTEGER NOT NULL DEFAULT 0,  -- Written once, at close
    summary_text TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (child_id) REFERENCES children(id)
)
"""

ACTIVITY_DEFINITIONS_SQL = """
CREATE TABLE IF NOT EXISTS activity_definitions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    default_duration_minutes INTEGER NOT NULL DEFAULT 0,
    category TEXT,
    objectives TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
)
"""

ACTIVITY_INSTANCES_SQL = """
CREATE TABLE IF NOT EXISTS activity_instances (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL,
    activity_def_id INTEGER NOT NULL,
    start_time TEXT,
    end_time TEXT,  -- NULL while running; never cleared once set
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (session_id) REFERENCES sessions(id),
    FOREIGN KEY (activity_def_id) REFERENCES activity_definitions(id)
)
"""

# Dependency order; reverse actions drop in the opposite order
BASE_TABLES: tuple[tuple[str, str], ...] = (
    ("children", CHILDREN_SQL),
    ("sessions", SESSIONS_SQL),
    ("activity_definitions", ACTIVITY_DEFINITIONS_SQL),
    ("activity_instances", ACTIVITY_INSTANCES_SQL),
)

# -----------------------------------------------------------------------------
# 002: notes and note templates
# -----------------------------------------------------------------------------

NOTES_SQL = """
CREATE TABLE IF NOT EXISTS notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL,
    note_text TEXT NOT NULL,
    category TEXT,
    timestamp TEXT NOT NULL,
    is_encrypted BOOLEAN DEFAULT FALSE,  -- Flag only; content is not encrypted
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (session_id) REFERENCES sessions(id)
)
"""

NOTE_TEMPLATES_SQL = """
CREATE TABLE IF NOT EXISTS note_templates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    template_text TEXT NOT NULL UNIQUE,
    category_hint TEXT,
    keywords TEXT,  -- Comma-separated
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
)
"""

NOTE_TABLES: tuple[tuple[str, str], ...] = (
    ("notes", NOTES_SQL),
    ("note_templates", NOTE_TEMPLATES_SQL),
)

# -----------------------------------------------------------------------------
# 003: rewards and goals
# -----------------------------------------------------------------------------

REWARDS_SQL = """
CREATE TABLE IF NOT EXISTS rewards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    child_id INTEGER NOT NULL,
    session_id INTEGER,  -- NULL when given outside a session
    type TEXT NOT NULL,  -- e.g. star, point, sticker
    value INTEGER DEFAULT 1,
    timestamp TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (child_id) REFERENCES children(id),
    FOREIGN KEY (session_id) REFERENCES sessions(id)
)
"""

GOALS_SQL = """
CREATE TABLE IF NOT EXISTS goals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    child_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    target_value INTEGER,
    target_type TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT,
    is_achieved BOOLEAN DEFAULT FALSE,
    achieved_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (child_id) REFERENCES children(id)
)
"""

REWARD_TABLES: tuple[tuple[str, str], ...] = (
    ("rewards", REWARDS_SQL),
    ("goals", GOALS_SQL),
)

# -----------------------------------------------------------------------------
# 004: flashcards
# -----------------------------------------------------------------------------

FLASHCARDS_SQL = """
CREATE TABLE IF NOT EXISTS flashcards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category TEXT NOT NULL,
    text_content TEXT,
    image_path TEXT,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
)
"""

SESSION_FLASHCARDS_SQL = """
CREATE TABLE IF NOT EXISTS session_flashcards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL,
    flashcard_id INTEGER NOT NULL,
    response_tag TEXT,
    response_notes TEXT,
    timestamp TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (session_id) REFERENCES sessions(id),
    FOREIGN KEY (flashcard_id) REFERENCES flashcards(id)
)
"""

FLASHCARD_TABLES: tuple[tuple[str, str], ...] = (
    ("flashcards", FLASHCARDS_SQL),
    ("session_flashcards", SESSION_FLASHCARDS_SQL),
)

# -----------------------------------------------------------------------------
# 005: lookup indexes (name, table, columns)
# -----------------------------------------------------------------------------

LOOKUP_INDEXES: tuple[tuple[str, str, str], ...] = (
    ("idx_children_name", "children", "name"),
    ("idx_children_deleted_at", "children", "deleted_at"),
    ("idx_sessions_child_id", "sessions", "child_id"),
    ("idx_sessions_start_time", "sessions", "start_time"),
    ("idx_sessions_deleted_at", "sessions", "deleted_at"),
    ("idx_activity_definitions_deleted_at", "activity_definitions", "deleted_at"),
    ("idx_activity_instances_session_id", "activity_instances", "session_id"),
    ("idx_activity_instances_activity_def_id", "activity_instances", "activity_def_id"),
    ("idx_activity_instances_running", "activity_instances", "session_id, end_time"),
    ("idx_activity_instances_deleted_at", "activity_instances", "deleted_at"),
    ("idx_notes_session_id", "notes", "session_id"),
    ("idx_notes_timestamp", "notes", "timestamp"),
    ("idx_notes_category", "notes", "category"),
    ("idx_notes_deleted_at", "notes", "deleted_at"),
    ("idx_rewards_child_id", "rewards", "child_id"),
    ("idx_rewards_session_id", "rewards", "session_id"),
    ("idx_rewards_timestamp", "rewards", "timestamp"),
    ("idx_rewards_deleted_at", "rewards", "deleted_at"),
    ("idx_goals_child_id", "goals", "child_id"),
    ("idx_goals_start_date", "goals", "start_date"),
    ("idx_goals_is_achieved", "goals", "is_achieved"),
    ("idx_goals_deleted_at", "goals", "deleted_at"),
    ("idx_flashcards_category", "flashcards", "category"),
    ("idx_flashcards_deleted_at", "flashcards", "deleted_at"),
    ("idx_session_flashcards_session_id", "session_flashcards", "session_id"),
    ("idx_session_flashcards_flashcard_id", "session_flashcards", "flashcard_id"),
    ("idx_session_flashcards_timestamp", "session_flashcards", "timestamp"),
    ("idx_session_flashcards_deleted_at", "session_flashcards", "deleted_at"),
)

# -----------------------------------------------------------------------------
# 006: at most one open session per child
# -----------------------------------------------------------------------------

OPEN_SESSION_INDEX = "uq_sessions_open_per_child"

# Ends every open session except the newest one per child so the unique
# index below can be built on databases written before it existed.
CLOSE_DUPLICATE_OPEN_SESSIONS_SQL = """
UPDATE sessions
SET end_time = start_time, duration_minutes = 0
WHERE end_time IS NULL
  AND deleted_at IS NULL
  AND id NOT IN (
      SELECT MAX(id) FROM sessions
      WHERE end_time IS NULL AND deleted_at IS NULL
      GROUP BY child_id
  )
"""

OPEN_SESSION_INDEX_SQL = f"""
CREATE UNIQUE INDEX IF NOT EXISTS {OPEN_SESSION_INDEX}
ON sessions(child_id)
WHERE end_time IS NULL AND deleted_at IS NULL
"""
