"""
Shared utility functions for the story_engine package.

Collection-valued record fields (tag lists, custom field maps,
related-entity lists) are persisted as JSON text columns.  The helpers
here do the encoding/decoding in one place so every table reads and
writes them the same way, and a corrupt column never takes a whole
listing down with it.
"""

import json
import logging
import threading
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON text columns
# ---------------------------------------------------------------------------

def encode_json_text(value):
    """Serialise a collection for storage in a TEXT column.

    Returns ``None`` when *value* is ``None`` so that COALESCE-style
    updates leave the stored column untouched.
    """
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def decode_json_text(text, default):
    """Parse a JSON TEXT column, returning *default* if it is empty or corrupt.

    Parameters
    ----------
    text : str or None
        Raw column value.
    default : list or dict
        The empty container to fall back on.  A fresh copy is returned so
        callers can mutate the result safely.

    Returns
    -------
    object
        Parsed JSON content, or a copy of *default* on failure or on a
        type mismatch (e.g. a list where a dict was expected).
    """
    if not text:
        return type(default)()
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Discarding corrupt JSON column value: %.60r", text)
        return type(default)()
    if not isinstance(value, type(default)):
        logger.warning(
            "Expected %s in JSON column, got %s",
            type(default).__name__, type(value).__name__,
        )
        return type(default)()
    return value


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class MonotonicClock:
    """Issue ISO 8601 UTC timestamps that strictly increase.

    Two writes in the same microsecond (or a wall clock stepping
    backwards) would otherwise produce equal or decreasing ``updated_at``
    values.  Each call returns at least one microsecond more than the
    previous one.
    """

    def __init__(self):
        self._last: datetime | None = None
        self._lock = threading.Lock()

    def now(self) -> str:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current.isoformat(timespec="microseconds")
