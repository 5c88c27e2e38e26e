"""
story_engine/models/ -- Pydantic v2 models for the story record store.

Submodules:
    base        RecordModel base (camelCase aliases, partial-field helpers).
    records     Project, Entity, Tag, Event and their partial-update models.
    validators  Field checks and validation-error humanisation.
"""

from story_engine.models.base import RecordModel, Scalar
from story_engine.models.records import (
    DEFAULT_TAG_CATEGORY,
    DEFAULT_TAG_COLOR,
    ENTITY_TYPES,
    Entity,
    EntityType,
    EntityUpdate,
    Event,
    EventUpdate,
    Project,
    ProjectUpdate,
    Tag,
    TagUpdate,
)

__all__ = [
    "DEFAULT_TAG_CATEGORY",
    "DEFAULT_TAG_COLOR",
    "ENTITY_TYPES",
    "Entity",
    "EntityType",
    "EntityUpdate",
    "Event",
    "EventUpdate",
    "Project",
    "ProjectUpdate",
    "RecordModel",
    "Scalar",
    "Tag",
    "TagUpdate",
]
