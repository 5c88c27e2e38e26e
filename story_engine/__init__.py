"""
Story Manager engine -- persistence core and view-model helpers.

Modules:
    record_store      SQLite CRUD for projects, entities, tags and events.
    migrations        Versioned, idempotent schema migrations.
    models/           Pydantic record models and validators.
    queries           Filtering, tag resolution and dashboard statistics.
    timeline_layout   Lane layout and pan/zoom maths for the timeline view.
    export_templater  Plain-text project export.
    errors            Error taxonomy shared by all of the above.
"""
