"""
Tests for story_app/services/event_bus.py -- EventBus singleton and signals.
"""

import threading
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from story_app.services.event_bus import EventBus


@pytest.fixture(autouse=True)
def _reset_event_bus():
    """Ensure each test starts with a fresh EventBus."""
    EventBus.reset()
    yield
    EventBus.reset()


@pytest.fixture()
def _ensure_qapp():
    """Make sure a QCoreApplication exists for signal/slot machinery."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


# ------------------------------------------------------------------
# Singleton tests
# ------------------------------------------------------------------


class TestSingletonPattern:
    def test_instance_returns_same_object(self, _ensure_qapp):
        assert EventBus.instance() is EventBus.instance()

    def test_reset_clears_instance(self, _ensure_qapp):
        bus1 = EventBus.instance()
        EventBus.reset()
        bus2 = EventBus.instance()
        assert bus1 is not bus2

    def test_thread_safe_creation(self, _ensure_qapp):
        """Multiple threads racing to create the instance should all get the same object."""
        results = []
        barrier = threading.Barrier(4)

        def _grab():
            barrier.wait()
            results.append(id(EventBus.instance()))

        threads = [threading.Thread(target=_grab) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 1, "All threads should get the same instance"


# ------------------------------------------------------------------
# Signal tests
# ------------------------------------------------------------------


class TestSignals:
    def test_project_selected_signal(self, _ensure_qapp):
        bus = EventBus.instance()
        receiver = MagicMock()
        bus.project_selected.connect(receiver)
        bus.project_selected.emit(3)
        receiver.assert_called_once_with(3)

    @pytest.mark.parametrize("name", ["record_created", "record_updated", "record_deleted"])
    def test_record_lifecycle_signals(self, _ensure_qapp, name):
        bus = EventBus.instance()
        receiver = MagicMock()
        getattr(bus, name).connect(receiver)
        getattr(bus, name).emit("entity", 42)
        receiver.assert_called_once_with("entity", 42)

    def test_error_occurred_signal(self, _ensure_qapp):
        bus = EventBus.instance()
        receiver = MagicMock()
        bus.error_occurred.connect(receiver)
        bus.error_occurred.emit("Cannot create tag: a tag with that name already exists")
        receiver.assert_called_once_with("Cannot create tag: a tag with that name already exists")

    def test_status_message_signal(self, _ensure_qapp):
        bus = EventBus.instance()
        receiver = MagicMock()
        bus.status_message.connect(receiver)
        bus.status_message.emit("Saved")
        receiver.assert_called_once_with("Saved")

    def test_multiple_receivers(self, _ensure_qapp):
        bus = EventBus.instance()
        r1 = MagicMock()
        r2 = MagicMock()
        bus.record_deleted.connect(r1)
        bus.record_deleted.connect(r2)
        bus.record_deleted.emit("project", 1)
        r1.assert_called_once_with("project", 1)
        r2.assert_called_once_with("project", 1)
