"""
story_engine/export_templater.py -- Plain-text export of a project.

Renders a project's setting, entities, tags and timeline into a fixed
text template that a writer can paste into an external assistant as
context.  Rendering is a pure function of records already fetched;
:func:`export_project` is the convenience wrapper that fetches them.

Usage:
    from story_engine.export_templater import export_project

    text = export_project(store, project_id)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from story_engine.errors import NotFoundError
from story_engine.models import ENTITY_TYPES, Entity, Event, Project, Tag
from story_engine.queries import group_tags_by_category
from story_engine.timeline_layout import sort_events

logger = logging.getLogger(__name__)

EMPTY = "(none)"

_TYPE_HEADINGS = {
    "character": "Characters",
    "faction": "Factions",
    "item": "Items",
    "event": "Story Events",
}

# Section order for entity types in the export.
_TYPE_ORDER = ("character", "faction", "item", "event")


def _text_block(value: str | None) -> str:
    value = (value or "").strip()
    return value if value else EMPTY


def _format_custom_fields(fields: dict) -> list[str]:
    return [f"    - {key}: {value}" for key, value in sorted(fields.items())]


def _render_entity(entity: Entity) -> list[str]:
    header = f"- {entity.name}"
    if entity.tags:
        header += f" [tags: {', '.join(entity.tags)}]"
    lines = [header]
    if entity.description and entity.description.strip():
        lines.append(f"  {entity.description.strip()}")
    lines.extend(_format_custom_fields(entity.custom_fields or {}))
    return lines


def _render_event(event: Event, names_by_id: dict[int, str]) -> list[str]:
    when = []
    if event.chapter_number is not None:
        when.append(f"Chapter {event.chapter_number}")
    if event.world_time:
        when.append(event.world_time)
    prefix = f"[{' | '.join(when)}] " if when else ""
    lines = [f"- {prefix}{event.name}"]
    if event.description and event.description.strip():
        lines.append(f"  {event.description.strip()}")
    involved = [names_by_id[eid] for eid in event.related_entities or [] if eid in names_by_id]
    if involved:
        lines.append(f"  Involves: {', '.join(involved)}")
    if event.tags:
        lines.append(f"  Tags: {', '.join(event.tags)}")
    return lines


def render_project_prompt(
    project: Project,
    entities: Sequence[Entity],
    tags: Iterable[Tag],
    events: Iterable[Event] = (),
) -> str:
    """Render the export template for *project*.

    Entities are grouped by type and tags by category.  Events are listed
    by chapter number (events without one first), with world time breaking
    ties.  Empty sections show a ``(none)`` placeholder so the shape of the
    document is always the same.
    """
    lines: list[str] = [
        f"# Project: {project.name}",
        "",
        _text_block(project.description),
        "",
        "## World Setting",
        _text_block(project.world_setting),
        "",
        "## Protagonist",
        _text_block(project.protagonist_info),
        "",
    ]

    by_type: dict[str, list[Entity]] = {t: [] for t in ENTITY_TYPES}
    for entity in entities:
        by_type.setdefault(entity.type, []).append(entity)
    for entity_type in _TYPE_ORDER:
        lines.append(f"## {_TYPE_HEADINGS[entity_type]}")
        members = sorted(by_type.get(entity_type, []), key=lambda e: e.name)
        if not members:
            lines.append(EMPTY)
        for entity in members:
            lines.extend(_render_entity(entity))
        lines.append("")

    lines.append("## Tags")
    groups = group_tags_by_category(tags)
    if not groups:
        lines.append(EMPTY)
    for category, members in groups.items():
        lines.append(f"### {category}")
        for tag in members:
            entry = f"- {tag.name}"
            if tag.description and tag.description.strip():
                entry += f": {tag.description.strip()}"
            lines.append(entry)
    lines.append("")

    lines.append("## Timeline")
    names_by_id = {e.id: e.name for e in entities if e.id is not None}
    ordered = sort_events(sort_events(events, "world"), "chapter")
    if not ordered:
        lines.append(EMPTY)
    for event in ordered:
        lines.extend(_render_event(event, names_by_id))

    return "\n".join(lines).rstrip() + "\n"


def export_project(store, project_id: int) -> str:
    """Fetch a project's records from *store* and render them.

    Raises
    ------
    NotFoundError
        If *project_id* does not exist.
    """
    project = store.get_project(project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} does not exist.")
    text = render_project_prompt(
        project,
        store.get_all_entities(project_id),
        store.get_all_tags(project_id),
        store.get_all_events(project_id),
    )
    logger.info("Exported project %d (%d characters)", project_id, len(text))
    return text
