"""
Tests for story_engine/export_templater.py -- plain-text project export.
"""

import pytest

from story_engine.errors import NotFoundError
from story_engine.export_templater import EMPTY, export_project, render_project_prompt
from story_engine.models import Project


class TestRenderProjectPrompt:
    """Tests for the pure renderer."""

    def test_empty_project_has_every_section(self):
        text = render_project_prompt(Project(id=1, name="Blank"), [], [], [])
        for heading in (
            "# Project: Blank", "## World Setting", "## Protagonist", "## Characters",
            "## Factions", "## Items", "## Story Events", "## Tags", "## Timeline",
        ):
            assert heading in text
        assert text.count(EMPTY) == 9
        assert text.endswith("\n")

    def test_section_order(self):
        text = render_project_prompt(Project(id=1, name="Blank"), [], [])
        positions = [text.index(h) for h in ("## Characters", "## Factions", "## Items", "## Story Events")]
        assert positions == sorted(positions)


class TestExportProject:
    """Tests for export_project against a real store."""

    def test_full_export(self, store, project, entity_payload, tag_payload, event_payload):
        aria = store.create_entity(entity_payload(
            tags=["hero"], description="A wandering bard", customFields={"age": 31},
        ))
        store.create_entity(entity_payload("Grey Court", type="faction"))
        store.create_tag(tag_payload("hero", category="role", description="Main cast"))
        store.create_event(event_payload(
            "The Crossing", chapterNumber=2, worldTime="Year 9", relatedEntities=[aria.id],
        ))
        store.create_event(event_payload("Prologue", chapterNumber=1))

        text = export_project(store, project.id)

        assert text.startswith("# Project: The Long Road\n")
        assert "A kingdom split by a dead god's river." in text
        assert "- Aria [tags: hero]" in text
        assert "    - age: 31" in text
        assert "- Grey Court" in text
        assert "### role\n- hero: Main cast" in text
        assert "- [Chapter 2 | Year 9] The Crossing" in text
        assert "  Involves: Aria" in text
        assert text.index("Prologue") < text.index("The Crossing")

    def test_only_this_project(self, store, project, entity_payload):
        other = store.create_project({"name": "Other"})
        store.create_entity({"projectId": other.id, "name": "Stranger", "type": "character"})
        assert "Stranger" not in export_project(store, project.id)

    def test_unknown_project(self, store):
        with pytest.raises(NotFoundError):
            export_project(store, 9999)
