"""
story_app/main.py -- Application entry point.

Configures logging, opens the story database (running any pending schema
migrations), makes sure a default project exists, and wires up the
access facade, store worker and event bus that the views talk to.

Usage::

    python -m story_app.main
    # or
    story-manager
"""

from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass

from story_app.config import Settings, load_settings
from story_app.paths import is_frozen
from story_app.services.access_facade import AccessFacade
from story_app.services.event_bus import EventBus
from story_app.services.store_worker import StoreWorker
from story_engine.errors import StoryStoreError
from story_engine.record_store import RecordStore

logger = logging.getLogger("story_app")


def _setup_logging(settings: Settings) -> None:
    """Configure logging for the application."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )


def _global_exception_hook(exc_type, exc_value, exc_tb):
    """Last-resort handler for uncaught exceptions."""
    logger.critical(
        "Uncaught exception: %s",
        "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
    )


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------

@dataclass
class AppServices:
    """The long-lived objects one application session runs on."""

    settings: Settings
    store: RecordStore
    facade: AccessFacade
    worker: StoreWorker
    bus: EventBus

    def shutdown(self) -> None:
        """Drain the worker, then close the database."""
        if not self.worker.stop():
            logger.warning("Store worker did not stop in time")
        self.store.close()


def build_services(settings: Settings | None = None) -> AppServices:
    """Open the store and build the services around it.

    Raises
    ------
    StorageError
        If the database cannot be opened.
    """
    settings = settings or load_settings()
    store = RecordStore(settings.db_path)

    report = store.migration_report
    for warning in report.warnings:
        logger.warning("Schema migration problem: %s", warning)
    if report.applied:
        logger.info(
            "Schema upgraded from v%d to v%d (%s)",
            report.from_version, report.to_version, ", ".join(report.applied),
        )

    bus = EventBus.instance()
    facade = AccessFacade(store)
    worker = StoreWorker(facade, bus)
    return AppServices(settings=settings, store=store, facade=facade, worker=worker, bus=bus)


def main() -> int:
    """Launch the Story Manager."""
    try:
        settings = load_settings()
    except ValueError as exc:
        print(f"story-manager: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings)
    logger.info("Starting Story Manager (frozen=%s)", is_frozen())
    sys.excepthook = _global_exception_hook

    # Signals need an application object even without a window.
    from PySide6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)  # noqa: F841

    try:
        services = build_services(settings)
    except StoryStoreError:
        logger.exception("Failed to open the story database at %s", settings.db_path)
        return 1

    try:
        project = services.store.ensure_default_project()
        stats = services.store.get_stats()
        logger.info(
            "Database %s: %d projects, %d entities, %d tags, %d events (active: '%s')",
            settings.db_path,
            stats["total_projects"], stats["total_entities"],
            stats["total_tags"], stats["total_events"],
            project.name,
        )
    except StoryStoreError:
        logger.exception("Failed to read the story database")
        return 1
    finally:
        logger.info("Shutting down...")
        services.shutdown()

    logger.info("Goodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
