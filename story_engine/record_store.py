"""
story_engine/record_store.py -- SQLite record store for the Story Manager

Owns the on-disk database (story-management.db) and every read/write
against it for the four record kinds: projects, entities, tags and
events.  Entities, tags and events each belong to exactly one project;
deleting a project removes them through ``ON DELETE CASCADE``.

Updates are partial merges: each field the caller provides overwrites
the stored value and everything else is left alone (COALESCE
semantics).  ``updated_at`` advances on every update, even an empty one.

Usage:
    from story_engine.record_store import RecordStore

    store = RecordStore("/path/to/story-management.db")
    project = store.ensure_default_project()
    aria = store.create_entity(
        {"projectId": project.id, "name": "Aria", "type": "character"}
    )
    characters = store.get_all_entities(project.id)
    store.update_entity(aria.id, {"description": "A wandering bard"})
    store.close()
"""

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ValidationError

from story_engine.errors import ConstraintError, StorageError
from story_engine.migrations import default_project_id, migrate
from story_engine.models import (
    Entity,
    EntityUpdate,
    Event,
    EventUpdate,
    Project,
    ProjectUpdate,
    Tag,
    TagUpdate,
)
from story_engine.models.validators import humanize_validation_error
from story_engine.utils import MonotonicClock, decode_json_text, encode_json_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-kind table description
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _Kind:
    """Everything the generic CRUD code needs to know about one record kind."""

    name: str
    table: str
    model: type
    update_model: type
    # Columns written on create (excluding id and timestamps).
    columns: tuple
    # Columns a partial update may touch.
    update_columns: tuple
    # column -> empty container used when decoding
    json_columns: dict
    order_by: str
    has_updated_at: bool = True


_KINDS = {
    "project": _Kind(
        name="project",
        table="projects",
        model=Project,
        update_model=ProjectUpdate,
        columns=("name", "description", "world_setting", "protagonist_info"),
        update_columns=("name", "description", "world_setting", "protagonist_info"),
        json_columns={},
        order_by="created_at DESC, id DESC",
    ),
    "entity": _Kind(
        name="entity",
        table="entities",
        model=Entity,
        update_model=EntityUpdate,
        columns=("project_id", "name", "type", "description", "tags", "custom_fields"),
        update_columns=("name", "type", "description", "tags", "custom_fields"),
        json_columns={"tags": [], "custom_fields": {}},
        order_by="created_at DESC, id DESC",
    ),
    "tag": _Kind(
        name="tag",
        table="tags",
        model=Tag,
        update_model=TagUpdate,
        columns=("project_id", "name", "color", "category", "description"),
        update_columns=("name", "color", "category", "description"),
        json_columns={},
        order_by="category, name, id",
        has_updated_at=False,
    ),
    "event": _Kind(
        name="event",
        table="events",
        model=Event,
        update_model=EventUpdate,
        columns=(
            "project_id", "name", "description", "world_time", "chapter_number",
            "related_entities", "tags", "custom_fields",
        ),
        update_columns=(
            "name", "description", "world_time", "chapter_number",
            "related_entities", "tags", "custom_fields",
        ),
        json_columns={"related_entities": [], "tags": [], "custom_fields": {}},
        # world_time is free text: this is a lexical, not chronological, order.
        order_by="chapter_number, world_time, id",
    ),
}

RECORD_KINDS = tuple(_KINDS)


def _describe_integrity_error(kind: _Kind, exc: sqlite3.IntegrityError) -> str:
    """Turn an SQLite constraint message into something a writer can act on."""
    text = str(exc)
    if "UNIQUE" in text and kind.name == "tag":
        return "a tag with that name already exists in this project"
    if "FOREIGN KEY" in text:
        return "the owning project does not exist"
    if "CHECK" in text:
        return f"a field holds a value the {kind.name} table does not allow ({text})"
    return text


# ---------------------------------------------------------------------------
# RecordStore
# ---------------------------------------------------------------------------

class RecordStore:
    """Durable CRUD for projects, entities, tags and events.

    All operations are synchronous and serialised through an internal
    lock, so the store may be shared with a worker thread but never runs
    two statements at once.

    Parameters
    ----------
    db_path : str or pathlib.Path
        Path to the SQLite file, or ``":memory:"``.  Parent directories
        are created as needed.
    """

    def __init__(self, db_path):
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._clock = MonotonicClock()

        if self.db_path != ":memory:":
            parent = Path(self.db_path).resolve().parent
            os.makedirs(str(parent), exist_ok=True)

        self._conn = None
        try:
            # Autocommit mode: single statements commit immediately and the
            # migration runner issues its own BEGIN/COMMIT.
            self._conn = sqlite3.connect(
                self.db_path, check_same_thread=False, isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
        except sqlite3.Error as exc:
            self.close()
            raise StorageError(f"Cannot open story database at {self.db_path}: {exc}") from exc

        try:
            self.migration_report = migrate(self._conn)
        except sqlite3.Error as exc:
            # Reading the schema version itself failed: the file is unusable.
            self.close()
            raise StorageError(f"Cannot read story database at {self.db_path}: {exc}") from exc

        logger.info(
            "Opened record store %s (schema v%d)",
            self.db_path, self.migration_report.to_version,
        )

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    def create(self, kind: str, payload):
        """Insert a new record of *kind* and return it with its id and timestamps.

        Raises
        ------
        ConstraintError
            If the payload is malformed (missing/blank name, bad entity
            type, non-scalar custom field, ...), names an unknown project,
            or repeats a tag name within a project.
        StorageError
            If SQLite fails underneath.
        """
        info = self._kind(kind)
        record = self._validate(info.model, payload)
        data = record.model_dump()

        now = self._clock.now()
        columns = list(info.columns) + ["created_at"]
        values = [self._encode(info, col, data.get(col)) for col in info.columns] + [now]
        if info.has_updated_at:
            columns.append("updated_at")
            values.append(now)

        sql = (
            f"INSERT INTO {info.table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        with self._locked(info, "create"):
            cursor = self._connection.execute(sql, values)

        stamps = {"id": cursor.lastrowid, "created_at": now}
        if info.has_updated_at:
            stamps["updated_at"] = now
        logger.debug("Created %s %d", info.name, cursor.lastrowid)
        return record.model_copy(update=stamps)

    def get_all(self, kind: str, project_id: int | None = None) -> list:
        """Return every record of *kind*, optionally limited to one project.

        Projects ignore *project_id*.  The order is kind specific: projects
        and entities newest first, tags by category then name, events by
        chapter number then world time.
        """
        info = self._kind(kind)
        sql = f"SELECT * FROM {info.table}"
        params: list = []
        if project_id is not None and info.name != "project":
            sql += " WHERE project_id = ?"
            params.append(project_id)
        sql += f" ORDER BY {info.order_by}"

        with self._locked(info, "list"):
            rows = self._connection.execute(sql, params).fetchall()
        return [self._row_to_record(info, row) for row in rows]

    def get(self, kind: str, record_id: int):
        """Return the record with *record_id*, or ``None`` if there is none."""
        info = self._kind(kind)
        with self._locked(info, "read"):
            row = self._connection.execute(
                f"SELECT * FROM {info.table} WHERE id = ?", (record_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_record(info, row)

    def update(self, kind: str, record_id: int, partial) -> bool:
        """Merge *partial* into the stored record.

        Fields that are omitted or ``None`` keep their stored value.
        ``updated_at`` is refreshed whenever the row exists.

        Returns
        -------
        bool
            Whether a row was affected (False for an unknown id).
        """
        info = self._kind(kind)
        changes = self._validate(info.update_model, partial or {}).provided_fields()

        assignments = [f"{col} = COALESCE(?, {col})" for col in info.update_columns]
        values = [self._encode(info, col, changes.get(col)) for col in info.update_columns]
        if info.has_updated_at:
            assignments.append("updated_at = ?")
            values.append(self._clock.now())
        values.append(record_id)

        with self._locked(info, "update"):
            cursor = self._connection.execute(
                f"UPDATE {info.table} SET {', '.join(assignments)} WHERE id = ?",
                values,
            )
        updated = cursor.rowcount > 0
        if updated:
            logger.debug("Updated %s %d (%s)", info.name, record_id, ", ".join(changes) or "touch")
        return updated

    def delete(self, kind: str, record_id: int) -> bool:
        """Delete a record; deleting a project cascades to everything it owns.

        Returns
        -------
        bool
            Whether a row was removed (False for an unknown id).
        """
        info = self._kind(kind)
        with self._locked(info, "delete"):
            cursor = self._connection.execute(
                f"DELETE FROM {info.table} WHERE id = ?", (record_id,),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted %s %d", info.name, record_id)
        return deleted

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, payload) -> Project:
        return self.create("project", payload)

    def get_all_projects(self) -> list[Project]:
        return self.get_all("project")

    def get_project(self, project_id: int) -> Project | None:
        return self.get("project", project_id)

    def update_project(self, project_id: int, partial) -> bool:
        return self.update("project", project_id, partial)

    def delete_project(self, project_id: int) -> bool:
        return self.delete("project", project_id)

    def ensure_default_project(self) -> Project:
        """Return the oldest project, creating "Default Project" if none exist."""
        info = _KINDS["project"]
        with self._locked(info, "create the default project"):
            project_id = default_project_id(self._connection, self._clock.now())
        return self.get_project(project_id)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def create_entity(self, payload) -> Entity:
        return self.create("entity", payload)

    def get_all_entities(self, project_id: int | None = None) -> list[Entity]:
        return self.get_all("entity", project_id)

    def get_entity(self, entity_id: int) -> Entity | None:
        return self.get("entity", entity_id)

    def update_entity(self, entity_id: int, partial) -> bool:
        return self.update("entity", entity_id, partial)

    def delete_entity(self, entity_id: int) -> bool:
        return self.delete("entity", entity_id)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def create_tag(self, payload) -> Tag:
        return self.create("tag", payload)

    def get_all_tags(self, project_id: int | None = None) -> list[Tag]:
        return self.get_all("tag", project_id)

    def get_tag(self, tag_id: int) -> Tag | None:
        return self.get("tag", tag_id)

    def update_tag(self, tag_id: int, partial) -> bool:
        return self.update("tag", tag_id, partial)

    def delete_tag(self, tag_id: int) -> bool:
        """Delete a tag.  Entity/event tag lists that name it are left as-is."""
        return self.delete("tag", tag_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, payload) -> Event:
        return self.create("event", payload)

    def get_all_events(self, project_id: int | None = None) -> list[Event]:
        return self.get_all("event", project_id)

    def get_event(self, event_id: int) -> Event | None:
        return self.get("event", event_id)

    def update_event(self, event_id: int, partial) -> bool:
        return self.update("event", event_id, partial)

    def delete_event(self, event_id: int) -> bool:
        return self.delete("event", event_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self, project_id: int | None = None) -> dict:
        """Return record counts.

        Returns
        -------
        dict
            Contains ``total_projects``, ``total_entities``,
            ``entities_by_type`` (dict), ``total_tags`` and
            ``total_events``, optionally scoped to *project_id*.
        """
        where = ""
        params: tuple = ()
        if project_id is not None:
            where = " WHERE project_id = ?"
            params = (project_id,)

        info = _KINDS["entity"]
        with self._locked(info, "count records"):
            conn = self._connection
            total_projects = conn.execute("SELECT COUNT(*) AS cnt FROM projects").fetchone()["cnt"]
            by_type_rows = conn.execute(
                f"SELECT type, COUNT(*) AS cnt FROM entities{where} "
                "GROUP BY type ORDER BY cnt DESC, type",
                params,
            ).fetchall()
            total_tags = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM tags{where}", params,
            ).fetchone()["cnt"]
            total_events = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM events{where}", params,
            ).fetchone()["cnt"]

        by_type = {r["type"]: r["cnt"] for r in by_type_rows}
        return {
            "total_projects": total_projects,
            "total_entities": sum(by_type.values()),
            "entities_by_type": by_type,
            "total_tags": total_tags,
            "total_events": total_events,
        }

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Closed record store %s", self.db_path)

    @property
    def closed(self) -> bool:
        return self._conn is None

    def __enter__(self):
        """Support usage as a context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Close on context manager exit."""
        self.close()
        return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("The record store is closed.")
        return self._conn

    @staticmethod
    def _kind(kind: str) -> _Kind:
        try:
            return _KINDS[kind]
        except KeyError:
            raise ValueError(
                f"Unknown record kind '{kind}'. Expected one of: {', '.join(_KINDS)}"
            ) from None

    @staticmethod
    def _validate(model: type, payload):
        """Validate *payload* (dict or model instance) as *model*."""
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ConstraintError(humanize_validation_error(exc, payload)) from exc

    @contextmanager
    def _locked(self, info: _Kind, action: str):
        """Serialise access and translate SQLite errors into store errors."""
        with self._lock:
            try:
                yield
            except sqlite3.IntegrityError as exc:
                raise ConstraintError(
                    f"Cannot {action} {info.name}: {_describe_integrity_error(info, exc)}"
                ) from exc
            except sqlite3.Error as exc:
                logger.error("Storage failure during %s %s: %s", action, info.name, exc)
                raise StorageError(f"Cannot {action} {info.name}: {exc}") from exc

    @staticmethod
    def _encode(info: _Kind, column: str, value):
        if column in info.json_columns:
            return encode_json_text(value)
        return value

    @staticmethod
    def _row_to_record(info: _Kind, row: sqlite3.Row):
        """Convert a row to its model, decoding JSON text columns.

        Rows that no longer validate (hand-edited or legacy data) are
        still returned, unvalidated, rather than breaking the listing.
        """
        data = dict(row)
        for column, empty in info.json_columns.items():
            data[column] = decode_json_text(data.get(column), empty)
        try:
            return info.model.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "%s %s does not validate, returning it as stored: %s",
                info.name, data.get("id"), exc.errors()[0].get("msg", exc),
            )
            return info.model.model_construct(**data)
