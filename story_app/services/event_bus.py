"""
story_app/services/event_bus.py -- Application-wide event bus using Qt signals.

Singleton that provides typed signals for record lifecycle notifications.
Views connect to the EventBus rather than to the store worker directly,
so any view holding a cached listing can refetch when a record of that
kind changes.

Usage::

    from story_app.services.event_bus import EventBus

    bus = EventBus.instance()
    bus.record_created.connect(my_handler)
    bus.record_created.emit("entity", 42)
"""

from __future__ import annotations

import threading

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """Application-wide signal bus for cross-view communication.

    Signals
    -------
    project_selected(int)
        Fired when the user switches the active project.  Payload is the
        project id.
    record_created(str, int)
        Fired after a record is created: (kind, id).
    record_updated(str, int)
        Fired after a record is updated: (kind, id).
    record_deleted(str, int)
        Fired after a record is deleted: (kind, id).  Deleting a project
        fires once for the project only, not for its cascaded records.
    error_occurred(str)
        Fired when an error needs to be shown to the user.
    status_message(str)
        Fired to update the status bar message.
    """

    project_selected = Signal(int)

    # Record lifecycle
    record_created = Signal(str, int)
    record_updated = Signal(str, int)
    record_deleted = Signal(str, int)

    # Error and status
    error_occurred = Signal(str)
    status_message = Signal(str)

    # Singleton
    _instance: EventBus | None = None
    _lock = threading.Lock()

    @classmethod
    def instance(cls) -> EventBus:
        """Return the singleton EventBus instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.deleteLater()
            cls._instance = None
