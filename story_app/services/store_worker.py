"""
story_app/services/store_worker.py -- QThread that serialises store requests.

Every facade command the UI issues goes through this worker.  Requests
are queued and executed one at a time, in submission order, on a single
background thread, so the UI never blocks on disk I/O and no two writes
ever interleave.  The caller gets a ``concurrent.futures.Future`` back
immediately; it resolves to the command's plain-data result or to the
store error that rejected it.

Requests cannot be cancelled: a future is marked running as soon as it
is issued, so ``future.cancel()`` returns False.

Usage::

    worker = StoreWorker(AccessFacade(store))
    worker.request_failed.connect(on_failure)

    entities = worker.submit("entity:getAll", project_id)
    tags = worker.submit("tag:getAll", project_id)
    show(entities.result(), tags.result())

    worker.stop()
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any

from PySide6.QtCore import QThread, Signal

from story_app.services.access_facade import (
    MUTATING_OPERATIONS,
    AccessFacade,
    split_command,
)
from story_app.services.event_bus import EventBus
from story_engine.errors import StoryStoreError

logger = logging.getLogger(__name__)


@dataclass
class _Request:
    request_id: int
    command: str
    args: tuple
    future: Future = field(default_factory=Future)


class StoreWorker(QThread):
    """Background thread owning all access to the record store.

    Signals
    -------
    request_finished(int, object)
        Emitted when a request succeeds: (request_id, result).
    request_failed(int, str)
        Emitted when a request is rejected: (request_id, message).
    """

    request_finished = Signal(int, object)
    request_failed = Signal(int, str)

    def __init__(self, facade: AccessFacade, bus: EventBus | None = None, parent=None):
        super().__init__(parent)
        self._facade = facade
        self._bus = bus if bus is not None else EventBus.instance()
        self._queue: queue.Queue[_Request | None] = queue.Queue()
        self._ids = itertools.count(1)
        self._state_lock = threading.Lock()
        self._stopped = False
        self.last_request_id = 0

    # ------------------------------------------------------------------
    # Caller side
    # ------------------------------------------------------------------

    def submit(self, command: str, *args: Any) -> Future:
        """Queue *command* and return a future for its result.

        Unknown commands are rejected immediately rather than queued.

        Raises
        ------
        UnknownCommandError
            If *command* is not in the facade vocabulary.
        RuntimeError
            If the worker has been stopped.
        """
        split_command(command)
        with self._state_lock:
            if self._stopped:
                raise RuntimeError("StoreWorker has been stopped")
            request = _Request(next(self._ids), command, args)
            request.future.set_running_or_notify_cancel()
            self.last_request_id = request.request_id
            self._queue.put(request)
            if not self.isRunning():
                self.start()
        logger.debug("Queued request %d: %s", request.request_id, command)
        return request.future

    def call(self, command: str, *args: Any, timeout: float | None = None) -> Any:
        """Submit *command* and wait for its result."""
        return self.submit(command, *args).result(timeout=timeout)

    def stop(self, timeout_ms: int = 5000) -> bool:
        """Finish the requests already queued, then end the thread.

        Returns True if the thread exited within *timeout_ms*.
        """
        with self._state_lock:
            if self._stopped:
                return True
            self._stopped = True
            running = self.isRunning()
            self._queue.put(None)
        if not running:
            return True
        return self.wait(timeout_ms)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Thread entry point -- executes queued requests in order."""
        while True:
            request = self._queue.get()
            if request is None:
                break
            self._execute(request)
        logger.info("StoreWorker stopped")

    def _execute(self, request: _Request) -> None:
        try:
            result = self._facade.dispatch(request.command, *request.args)
        except StoryStoreError as exc:
            logger.warning("Request %d (%s) rejected: %s", request.request_id, request.command, exc)
            self._fail(request, exc)
            return
        except Exception as exc:
            logger.exception("Request %d (%s) failed", request.request_id, request.command)
            self._fail(request, exc)
            return

        self.request_finished.emit(request.request_id, result)
        self._announce(request, result)
        request.future.set_result(result)

    def _fail(self, request: _Request, exc: BaseException) -> None:
        message = str(exc) or type(exc).__name__
        self.request_failed.emit(request.request_id, message)
        self._bus.error_occurred.emit(message)
        request.future.set_exception(exc)

    def _announce(self, request: _Request, result: Any) -> None:
        """Tell the event bus about successful mutations."""
        kind, operation = split_command(request.command)
        if operation not in MUTATING_OPERATIONS:
            return
        if operation == "create":
            self._bus.record_created.emit(kind, int(result["id"]))
        elif result:
            signal = self._bus.record_updated if operation == "update" else self._bus.record_deleted
            signal.emit(kind, int(request.args[0]))
