"""
story_engine/migrations.py -- Versioned schema migrations for the story database.

The schema version lives in SQLite's ``PRAGMA user_version``.  Each entry
in ``MIGRATIONS`` is applied once, in order, inside its own transaction,
and the version is bumped as soon as the step commits.  Every step is
also written to be a no-op against a database that already has the shape
it produces, so re-running a step (e.g. after a crash between the commit
and the version bump) is harmless.

A step that fails is rolled back, logged as a ``MigrationWarning`` and
stops the remaining steps.  The store still opens so the writer can get
at their data; later steps are retried on the next start.

Usage:
    from story_engine.migrations import migrate

    report = migrate(conn)
    if report.warnings:
        ...
"""

import logging
import sqlite3
from dataclasses import dataclass, field

from story_engine.errors import MigrationWarning
from story_engine.utils import now_iso

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Default Project"


# ---------------------------------------------------------------------------
# Current table shapes
# ---------------------------------------------------------------------------

_PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    world_setting TEXT,
    protagonist_info TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

# {table} is substituted so the same DDL can build a replacement table
# during a rebuild.
_TABLE_DDL = {
    "entities": """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('character', 'item', 'faction', 'event')),
    description TEXT,
    tags TEXT,              -- JSON array of tag names
    custom_fields TEXT,     -- JSON object
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
""",
    "tags": """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    category TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (project_id, name)
)
""",
    "events": """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    world_time TEXT,
    chapter_number INTEGER,
    related_entities TEXT,  -- JSON array of entity ids
    tags TEXT,              -- JSON array of tag names
    custom_fields TEXT,     -- JSON object
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
""",
}

_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_entities_project_type ON entities(project_id, type);
CREATE INDEX IF NOT EXISTS idx_events_project_order
    ON events(project_id, chapter_number, world_time);
"""

# Column fallbacks used when copying rows out of a legacy table.
_COPY_FALLBACKS = {
    "color": "'#4f46e5'",
    "category": "'custom'",
}


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class MigrationReport:
    """What a call to :func:`migrate` did."""

    from_version: int
    to_version: int
    applied: list[str] = field(default_factory=list)
    warnings: list[MigrationWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    # PRAGMA does not accept bound parameters.
    conn.execute(f"PRAGMA user_version = {int(version)}")


def _table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]


def _table_sql(conn: sqlite3.Connection, table: str) -> str:
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    ).fetchone()
    return row[0] if row and row[0] else ""


def _cascades_from_projects(conn: sqlite3.Connection, table: str) -> bool:
    for fk in conn.execute(f"PRAGMA foreign_key_list({table})"):
        # (id, seq, table, from, to, on_update, on_delete, match)
        if fk[2] == "projects" and fk[3] == "project_id" and fk[6].upper() == "CASCADE":
            return True
    return False


def _has_unique_index(conn: sqlite3.Connection, table: str, columns: list[str]) -> bool:
    for index in conn.execute(f"PRAGMA index_list({table})"):
        # (seq, name, unique, origin, partial)
        if not index[2]:
            continue
        indexed = [row[2] for row in conn.execute(f"PRAGMA index_info('{index[1]}')")]
        if indexed == columns:
            return True
    return False


def _needs_rebuild(conn: sqlite3.Connection, table: str) -> bool:
    """Return True if *table* predates project scoping in any way."""
    columns = _table_columns(conn, table)
    if not columns:
        return False
    if "project_id" not in columns:
        return True
    if not _cascades_from_projects(conn, table):
        return True
    if table == "entities" and "'event'" not in _table_sql(conn, table):
        return True
    if table == "tags" and not _has_unique_index(conn, "tags", ["project_id", "name"]):
        return True
    return False


def _timestamp_expr(column: str, now: str) -> str:
    """SQL that upgrades ``CURRENT_TIMESTAMP`` text to ISO 8601 UTC."""
    return (
        f"CASE WHEN {column} IS NULL THEN '{now}' "
        f"WHEN {column} GLOB '[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9] *' "
        f"THEN replace({column}, ' ', 'T') || '.000000+00:00' "
        f"ELSE {column} END"
    )


def default_project_id(conn: sqlite3.Connection, now: str | None = None) -> int:
    """Return the oldest project's id, creating a default project if needed."""
    row = conn.execute("SELECT id FROM projects ORDER BY id LIMIT 1").fetchone()
    if row is not None:
        return row[0]
    now = now or now_iso()
    cursor = conn.execute(
        "INSERT INTO projects (name, created_at, updated_at) VALUES (?, ?, ?)",
        (DEFAULT_PROJECT_NAME, now, now),
    )
    logger.info("Created '%s' (id=%d)", DEFAULT_PROJECT_NAME, cursor.lastrowid)
    return cursor.lastrowid


def _rebuild_table(conn: sqlite3.Connection, table: str, project_id: int, now: str) -> int:
    """Copy *table* into its current shape, assigning unscoped rows to *project_id*.

    Rows whose project id is NULL or names a project that no longer exists
    are also assigned to *project_id*.  Returns the number of rows copied.
    """
    old_columns = _table_columns(conn, table)
    if "project_id" in old_columns:
        dangling = conn.execute(
            f"SELECT COUNT(*) FROM {table} "
            "WHERE project_id IS NULL OR project_id NOT IN (SELECT id FROM projects)"
        ).fetchone()[0]
        if dangling:
            logger.warning(
                "Reassigning %d %s rows with a missing project to project %d",
                dangling, table, project_id,
            )
    new_table = f"{table}__rebuild"
    conn.execute(f"DROP TABLE IF EXISTS {new_table}")
    conn.execute(_TABLE_DDL[table].format(table=new_table))
    new_columns = _table_columns(conn, new_table)

    targets: list[str] = []
    sources: list[str] = []
    for column in new_columns:
        if column == "project_id":
            expr = (
                "CASE WHEN project_id IN (SELECT id FROM projects) "
                f"THEN project_id ELSE {int(project_id)} END"
                if "project_id" in old_columns else str(int(project_id))
            )
        elif column in ("created_at", "updated_at"):
            expr = _timestamp_expr(column, now) if column in old_columns else f"'{now}'"
        elif column in old_columns:
            fallback = _COPY_FALLBACKS.get(column)
            expr = f"COALESCE({column}, {fallback})" if fallback else column
        elif column in _COPY_FALLBACKS:
            expr = _COPY_FALLBACKS[column]
        else:
            continue
        targets.append(column)
        sources.append(expr)

    # Reassigned tags can collide on (project_id, name); the oldest one wins.
    conflict = " OR IGNORE" if table == "tags" else ""
    conn.execute(
        f"INSERT{conflict} INTO {new_table} ({', '.join(targets)}) "
        f"SELECT {', '.join(sources)} FROM {table} ORDER BY id"
    )
    copied = conn.execute(f"SELECT COUNT(*) FROM {new_table}").fetchone()[0]
    original = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    if copied < original:
        logger.warning(
            "Dropped %d duplicate %s rows while rebuilding", original - copied, table,
        )
    conn.execute(f"DROP TABLE {table}")
    conn.execute(f"ALTER TABLE {new_table} RENAME TO {table}")
    return copied


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def _create_base_schema(conn: sqlite3.Connection) -> None:
    conn.execute(_PROJECTS_DDL)
    for table, ddl in _TABLE_DDL.items():
        conn.execute(ddl.format(table=table))


def _scope_records_by_project(conn: sqlite3.Connection) -> None:
    stale = [table for table in _TABLE_DDL if _needs_rebuild(conn, table)]
    if not stale:
        return
    now = now_iso()
    project_id = default_project_id(conn, now)
    for table in stale:
        copied = _rebuild_table(conn, table, project_id, now)
        logger.info(
            "Rebuilt legacy table '%s' (%d rows assigned to project %d)",
            table, copied, project_id,
        )


def _add_lookup_indexes(conn: sqlite3.Connection) -> None:
    for statement in _INDEX_SQL.split(";"):
        if statement.strip():
            conn.execute(statement)


# Ordered; a step's version is its position + 1.  Append only.
MIGRATIONS = [
    ("create_base_schema", _create_base_schema),
    ("scope_records_by_project", _scope_records_by_project),
    ("add_lookup_indexes", _add_lookup_indexes),
]

SCHEMA_VERSION = len(MIGRATIONS)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _run_step(conn: sqlite3.Connection, version: int, step) -> None:
    """Apply one step and bump the version in a single transaction.

    Foreign keys are switched off for the duration because table rebuilds
    drop and rename tables that other rows point at; the pragma cannot be
    changed inside a transaction.
    """
    conn.execute("PRAGMA foreign_keys=OFF")
    try:
        conn.execute("BEGIN")
        try:
            step(conn)
            violations = conn.execute("PRAGMA foreign_key_check").fetchall()
            if violations:
                raise sqlite3.IntegrityError(
                    f"{len(violations)} rows reference missing projects"
                )
            _set_schema_version(conn, version)
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
    finally:
        conn.execute("PRAGMA foreign_keys=ON")


def migrate(conn: sqlite3.Connection) -> MigrationReport:
    """Bring *conn*'s schema up to :data:`SCHEMA_VERSION`.

    *conn* must be in autocommit mode (``isolation_level=None``) so the
    explicit transactions here are the only ones in play.  Afterwards at
    least one project exists, unless the projects table itself could not
    be created.
    """
    start = get_schema_version(conn)
    report = MigrationReport(from_version=start, to_version=start)

    for version, (name, step) in enumerate(MIGRATIONS, start=1):
        if version <= start:
            continue
        try:
            _run_step(conn, version, step)
        except sqlite3.Error as exc:
            warning = MigrationWarning(f"Migration {version} ({name}) failed: {exc}")
            logger.warning("%s", warning)
            report.warnings.append(warning)
            break
        report.applied.append(name)
        report.to_version = version
        logger.info("Applied schema migration %d (%s)", version, name)

    try:
        default_project_id(conn)
    except sqlite3.Error as exc:
        warning = MigrationWarning(f"Could not ensure a default project exists: {exc}")
        logger.warning("%s", warning)
        report.warnings.append(warning)

    return report
