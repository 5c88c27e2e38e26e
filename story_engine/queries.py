"""
story_engine/queries.py -- Filtering and summary helpers over fetched records.

These run on records the presentation layer already holds (the result of
``getAll`` calls), so they never touch the database.  Searches are simple
case-insensitive substring matches; there is no ranking.

Usage:
    from story_engine.queries import filter_entities, dashboard_stats

    heroes = filter_entities(entities, search="aria", entity_type="character")
    stats = dashboard_stats(entities, events, tags)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from story_engine.models import ENTITY_TYPES, Entity, Event, Tag

logger = logging.getLogger(__name__)

TIMELINES = ("world", "chapter")


def _matches_search(name: str, description: str | None, needle: str) -> bool:
    if not needle:
        return True
    needle = needle.lower()
    return needle in (name or "").lower() or needle in (description or "").lower()


# ------------------------------------------------------------------
# Entities and events
# ------------------------------------------------------------------

def filter_entities(
    entities: Iterable[Entity],
    search: str = "",
    entity_type: str | None = None,
    tag: str | None = None,
) -> list[Entity]:
    """Return the entities matching every given filter, in input order.

    Parameters
    ----------
    search : str
        Substring looked for in the name or description (case-insensitive).
    entity_type : str, optional
        Keep only entities of this type.  ``None`` or ``"all"`` disables it.
    tag : str, optional
        Keep only entities carrying this tag name.  ``None`` or ``"all"``
        disables it.
    """
    search = search.strip()
    result = []
    for entity in entities:
        if not _matches_search(entity.name, entity.description, search):
            continue
        if entity_type not in (None, "all") and entity.type != entity_type:
            continue
        if tag not in (None, "all") and tag not in (entity.tags or []):
            continue
        result.append(entity)
    return result


def filter_events(
    events: Iterable[Event],
    entities: Iterable[Entity] = (),
    timeline: str | None = None,
    search: str = "",
    entity_type: str | None = None,
    tag: str | None = None,
) -> list[Event]:
    """Return the events matching every given filter, in input order.

    ``timeline="world"`` keeps events with a world time and
    ``timeline="chapter"`` keeps events with a chapter number.
    ``entity_type`` keeps events related to at least one entity of that
    type; related ids that match no entity in *entities* are ignored.
    """
    if timeline is not None and timeline not in TIMELINES:
        raise ValueError(f"timeline must be one of {TIMELINES}, got {timeline!r}")

    types_by_id = {e.id: e.type for e in entities}
    search = search.strip()
    result = []
    for event in events:
        if timeline == "world" and not event.world_time:
            continue
        if timeline == "chapter" and event.chapter_number is None:
            continue
        if not _matches_search(event.name, event.description, search):
            continue
        if entity_type not in (None, "all"):
            related = event.related_entities or []
            if not any(types_by_id.get(eid) == entity_type for eid in related):
                continue
        if tag not in (None, "all") and tag not in (event.tags or []):
            continue
        result.append(event)
    return result


# ------------------------------------------------------------------
# Tags
# ------------------------------------------------------------------

def group_tags_by_category(tags: Iterable[Tag]) -> dict[str, list[Tag]]:
    """Group tags by category; categories and tags within them are sorted by name."""
    groups: dict[str, list[Tag]] = {}
    for tag in tags:
        groups.setdefault(tag.category, []).append(tag)
    return {
        category: sorted(groups[category], key=lambda t: t.name)
        for category in sorted(groups)
    }


def resolve_tags(names: Iterable[str], tags: Iterable[Tag]) -> list[Tag]:
    """Resolve tag *names* held by an entity or event to Tag records.

    Records reference tags by name, and deleting or renaming a tag does
    not rewrite those references, so unknown names are skipped.
    """
    by_name = {tag.name: tag for tag in tags}
    resolved = []
    for name in names:
        tag = by_name.get(name)
        if tag is None:
            logger.debug("Skipping dangling tag reference '%s'", name)
            continue
        resolved.append(tag)
    return resolved


# ------------------------------------------------------------------
# Dashboard
# ------------------------------------------------------------------

@dataclass
class DashboardStats:
    """Counts and recent activity for a project overview."""

    total_entities: int = 0
    total_events: int = 0
    total_tags: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    recent_entities: list[Entity] = field(default_factory=list)
    recent_events: list[Event] = field(default_factory=list)


def _newest_first(records: Sequence) -> list:
    return sorted(records, key=lambda r: (r.created_at or "", r.id or 0), reverse=True)


def dashboard_stats(
    entities: Sequence[Entity],
    events: Sequence[Event],
    tags: Sequence[Tag],
    recent: int = 5,
) -> DashboardStats:
    """Summarise a project's records for the overview screen."""
    by_type = {entity_type: 0 for entity_type in ENTITY_TYPES}
    for entity in entities:
        by_type[entity.type] = by_type.get(entity.type, 0) + 1

    return DashboardStats(
        total_entities=len(entities),
        total_events=len(events),
        total_tags=len(tags),
        by_type=by_type,
        recent_entities=_newest_first(entities)[:recent],
        recent_events=_newest_first(events)[:recent],
    )
