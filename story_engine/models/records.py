"""
story_engine/models/records.py -- The four stored record kinds.

Each kind has a full record model (used for creation and for rows read
back from the store) and a partial-update model whose fields are all
optional.  Entities, tags and events must name their owning project
explicitly; there is no implicit default project at the write boundary.
"""

from __future__ import annotations

from typing import Literal, Optional, get_args

from pydantic import Field, StrictInt, field_validator

from story_engine.models.base import RecordModel, Scalar
from story_engine.models.validators import check_color, check_name, check_tag_names

EntityType = Literal["character", "item", "faction", "event"]
ENTITY_TYPES: tuple[str, ...] = get_args(EntityType)

DEFAULT_TAG_COLOR = "#4f46e5"
DEFAULT_TAG_CATEGORY = "custom"


# ------------------------------------------------------------------
# Project
# ------------------------------------------------------------------

class Project(RecordModel):
    """Top-level tenancy unit; everything else belongs to one project."""

    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    world_setting: Optional[str] = None
    protagonist_info: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)


class ProjectUpdate(RecordModel):
    name: Optional[str] = None
    description: Optional[str] = None
    world_setting: Optional[str] = None
    protagonist_info: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)


# ------------------------------------------------------------------
# Entity
# ------------------------------------------------------------------

class Entity(RecordModel):
    """A character, item, faction or event-typed story element.

    ``tags`` holds tag *names*; ``custom_fields`` is an open bag of
    scalar attributes (birth date, creation date, ...).
    """

    id: Optional[int] = None
    project_id: StrictInt
    name: str
    type: EntityType
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    custom_fields: dict[str, Scalar] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value):
        return check_tag_names(value)


class EntityUpdate(RecordModel):
    name: Optional[str] = None
    type: Optional[EntityType] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    custom_fields: Optional[dict[str, Scalar]] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value):
        return check_tag_names(value)


# ------------------------------------------------------------------
# Tag
# ------------------------------------------------------------------

class Tag(RecordModel):
    """A coloured, categorised label.  Names are unique per project."""

    id: Optional[int] = None
    project_id: StrictInt
    name: str
    color: str = DEFAULT_TAG_COLOR
    category: str = DEFAULT_TAG_CATEGORY
    description: Optional[str] = None
    created_at: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)

    @field_validator("color")
    @classmethod
    def _valid_color(cls, value):
        return check_color(value)


class TagUpdate(RecordModel):
    name: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)

    @field_validator("color")
    @classmethod
    def _valid_color(cls, value):
        return check_color(value)


# ------------------------------------------------------------------
# Event
# ------------------------------------------------------------------

class Event(RecordModel):
    """A timeline occurrence placed by world time and/or chapter number.

    ``world_time`` is free text and orders lexically.  The ids in
    ``related_entities`` are kept in the order given and are not checked
    against the entities table.
    """

    id: Optional[int] = None
    project_id: StrictInt
    name: str
    description: Optional[str] = None
    world_time: Optional[str] = None
    chapter_number: Optional[int] = Field(default=None, ge=0)
    related_entities: list[int] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    custom_fields: dict[str, Scalar] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value):
        return check_tag_names(value)


class EventUpdate(RecordModel):
    name: Optional[str] = None
    description: Optional[str] = None
    world_time: Optional[str] = None
    chapter_number: Optional[int] = Field(default=None, ge=0)
    related_entities: Optional[list[int]] = None
    tags: Optional[list[str]] = None
    custom_fields: Optional[dict[str, Scalar]] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        return check_name(value)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value):
        return check_tag_names(value)
