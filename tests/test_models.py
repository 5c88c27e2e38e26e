"""
Tests for story_engine/models -- record models, validators and error messages.
"""

import pytest
from pydantic import ValidationError

from story_engine.models import (
    ENTITY_TYPES,
    Entity,
    EntityUpdate,
    Event,
    Project,
    Tag,
    TagUpdate,
)
from story_engine.models.validators import (
    check_tag_names,
    humanize_validation_error,
)


# ------------------------------------------------------------------
# Aliases
# ------------------------------------------------------------------


class TestAliases:
    def test_camel_and_snake_keys_accepted(self):
        a = Project.model_validate({"name": "A", "worldSetting": "Sea"})
        b = Project.model_validate({"name": "A", "world_setting": "Sea"})
        assert a.world_setting == b.world_setting == "Sea"

    def test_dump_by_alias_is_camel_case(self):
        entity = Entity(project_id=1, name="Aria", type="character")
        payload = entity.to_payload()
        assert payload["projectId"] == 1
        assert "customFields" in payload
        assert "project_id" not in payload

    def test_snake_case_dump(self):
        entity = Entity(project_id=1, name="Aria", type="character")
        assert "custom_fields" in entity.to_payload(camel=False)

    def test_unknown_keys_ignored(self):
        tag = Tag.model_validate({"projectId": 1, "name": "hero", "selected": True})
        assert not hasattr(tag, "selected")


# ------------------------------------------------------------------
# Field rules
# ------------------------------------------------------------------


class TestFieldRules:
    def test_entity_types(self):
        assert ENTITY_TYPES == ("character", "item", "faction", "event")

    def test_project_id_must_be_int(self):
        with pytest.raises(ValidationError):
            Entity.model_validate({"projectId": "1", "name": "Aria", "type": "character"})

    def test_custom_field_scalars_keep_their_type(self):
        entity = Entity(
            project_id=1, name="Aria", type="character",
            custom_fields={"alive": True, "age": 31, "height": 1.7, "born": "Year 9"},
        )
        assert entity.custom_fields["alive"] is True
        assert isinstance(entity.custom_fields["age"], int)
        assert isinstance(entity.custom_fields["height"], float)

    @pytest.mark.parametrize("value", [[1, 2], {"nested": 1}])
    def test_custom_field_rejects_collections(self, value):
        with pytest.raises(ValidationError):
            Entity(project_id=1, name="Aria", type="character", custom_fields={"bad": value})

    def test_negative_chapter_rejected(self):
        with pytest.raises(ValidationError):
            Event(project_id=1, name="x", chapter_number=-1)

    @pytest.mark.parametrize("color", ["#fff", "#4F46E5"])
    def test_valid_colors(self, color):
        assert Tag(project_id=1, name="x", color=color).color == color

    @pytest.mark.parametrize("color", ["red", "#12345", "4f46e5"])
    def test_invalid_colors(self, color):
        with pytest.raises(ValidationError):
            Tag(project_id=1, name="x", color=color)

    def test_tag_name_stripped(self):
        assert Tag(project_id=1, name="  hero ").name == "hero"

    @pytest.mark.parametrize("model, extra", [
        (Project, {}),
        (Entity, {"project_id": 1, "type": "character"}),
        (Event, {"project_id": 1}),
    ])
    def test_record_names_stripped(self, model, extra):
        assert model(name="  Aria ", **extra).name == "Aria"

    def test_update_name_stripped(self):
        assert EntityUpdate.model_validate({"name": " Aria "}).provided_fields() == {"name": "Aria"}

    def test_tag_list_cleaned(self):
        assert check_tag_names([" hero", "hero", "", "villain "]) == ["hero", "villain"]


# ------------------------------------------------------------------
# Partial updates
# ------------------------------------------------------------------


class TestUpdateModels:
    def test_provided_fields_drop_unset_and_none(self):
        update = EntityUpdate.model_validate({"name": "Aria", "description": None})
        assert update.provided_fields() == {"name": "Aria"}

    def test_empty_update(self):
        assert EntityUpdate.model_validate({}).provided_fields() == {}

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            TagUpdate.model_validate({"name": "  "})


# ------------------------------------------------------------------
# Error messages
# ------------------------------------------------------------------


class TestHumanize:
    def _message(self, model, payload):
        with pytest.raises(ValidationError) as info:
            model.model_validate(payload)
        return humanize_validation_error(info.value, payload)

    def test_missing_field(self):
        msg = self._message(Entity, {"projectId": 1, "type": "character"})
        assert "'name' is required" in msg

    def test_invalid_literal(self):
        msg = self._message(Entity, {"projectId": 1, "name": "Aria", "type": "planet"})
        assert "'type' has an invalid value" in msg

    def test_names_the_record(self):
        msg = self._message(Entity, {"name": "Aria", "type": "character"})
        assert "for 'Aria'" in msg
