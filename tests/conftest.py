"""
Shared pytest fixtures for the Story Manager test suite.

Provides:
    - db_path: path to a fresh database file in a temporary directory
    - store: an open RecordStore on db_path (closed after the test)
    - project: a project created in that store
    - entity_payload / tag_payload / event_payload: valid camelCase
      payload factories for the given project
"""

import os
import sys
from pathlib import Path

import pytest

# Qt needs no display for signal and thread tests.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# ---------------------------------------------------------------------------
# Ensure the packages are importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from story_engine.record_store import RecordStore  # noqa: E402


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db_path(tmp_path):
    """Return a path for a database file that does not exist yet."""
    return tmp_path / "data" / "story-management.db"


@pytest.fixture
def store(db_path):
    """Yield an open RecordStore and close it afterwards."""
    s = RecordStore(db_path)
    yield s
    s.close()


@pytest.fixture
def project(store):
    """Return a freshly created project."""
    return store.create_project({
        "name": "The Long Road",
        "description": "A bard crosses a broken kingdom.",
        "worldSetting": "A kingdom split by a dead god's river.",
        "protagonistInfo": "Aria, a wandering bard.",
    })


@pytest.fixture
def entity_payload(project):
    """Return a factory for entity payloads in *project*."""
    def _make(name="Aria", type="character", **extra):
        payload = {"projectId": project.id, "name": name, "type": type}
        payload.update(extra)
        return payload
    return _make


@pytest.fixture
def tag_payload(project):
    """Return a factory for tag payloads in *project*."""
    def _make(name="hero", **extra):
        payload = {"projectId": project.id, "name": name}
        payload.update(extra)
        return payload
    return _make


@pytest.fixture
def event_payload(project):
    """Return a factory for event payloads in *project*."""
    def _make(name="The Crossing", **extra):
        payload = {"projectId": project.id, "name": name}
        payload.update(extra)
        return payload
    return _make
