"""
story_engine/models/validators.py -- Field validators and error humanisation.

Validation problems surface to the writer as short sentences rather than
raw pydantic error dumps, because the presentation layer shows them
verbatim in a failure notice.

Usage::

    from story_engine.models.validators import humanize_validation_error

    try:
        Entity.model_validate(payload)
    except ValidationError as exc:
        message = humanize_validation_error(exc, payload)
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# ------------------------------------------------------------------
# Field checks (called from model validators)
# ------------------------------------------------------------------

def check_name(value: str | None) -> str | None:
    """Strip surrounding whitespace and reject names left empty."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("a name cannot be blank")
    return value


def check_color(value: str | None) -> str | None:
    """Accept ``#RGB`` or ``#RRGGBB`` display colours."""
    if value is not None and not _HEX_COLOR_RE.match(value):
        raise ValueError(f"'{value}' is not a hex colour like #4f46e5")
    return value


def check_tag_names(value: list[str] | None) -> list[str] | None:
    """Strip tag references and drop blanks and duplicates, keeping order."""
    if value is None:
        return None
    seen: set[str] = set()
    names: list[str] = []
    for raw in value:
        name = raw.strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names


# ------------------------------------------------------------------
# Error humanisation
# ------------------------------------------------------------------

def _humanize_pydantic_error(err: dict, payload: dict) -> str:
    """Convert a single pydantic error dict to a human-friendly message."""
    loc = err.get("loc", ())
    msg = err.get("msg", "Validation error")
    err_type = err.get("type", "")

    field_path = " -> ".join(str(part) for part in loc if part != "__root__")
    if not field_path:
        field_path = "(root)"

    record_name = payload.get("name") if isinstance(payload, dict) else None
    record_name = record_name or "this record"

    if err_type == "missing":
        return (
            f"The field '{field_path}' is required for '{record_name}' "
            f"but was not provided."
        )
    elif err_type == "literal_error":
        return f"The field '{field_path}' has an invalid value. {msg}."
    elif "type" in err_type:
        return f"The field '{field_path}' has the wrong type. {msg}."
    else:
        return f"Field '{field_path}': {msg}."


def humanize_validation_error(exc: ValidationError, payload: Any) -> str:
    """Join every error in *exc* into one message."""
    payload = payload if isinstance(payload, dict) else {}
    return " ".join(_humanize_pydantic_error(err, payload) for err in exc.errors())
