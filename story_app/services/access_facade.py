"""
story_app/services/access_facade.py -- Command vocabulary over the record store.

The presentation layer never holds a RecordStore.  It sends a command
name plus arguments (``"entity:getAll", project_id``) and receives plain
data back: dicts keyed in camelCase, lists of such dicts, booleans or
``None``.  The facade adds no behaviour of its own; every command is a
straight pass-through to one store method.

Commands
--------
    project:create  project:getAll  project:get  project:update  project:delete
    entity:create   entity:getAll                entity:update   entity:delete
    tag:create      tag:getAll                   tag:update      tag:delete
    event:create    event:getAll                 event:update    event:delete

Usage::

    facade = AccessFacade(store)
    aria = facade.dispatch("entity:create", {"projectId": 1, "name": "Aria",
                                             "type": "character"})
    facade.dispatch("entity:update", aria["id"], {"description": "A bard"})
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from story_engine.errors import UnknownCommandError
from story_engine.record_store import RecordStore

logger = logging.getLogger(__name__)

# (kind, operation) pairs in the vocabulary.  Only projects support "get".
_OPERATIONS = {
    "project": ("create", "getAll", "get", "update", "delete"),
    "entity": ("create", "getAll", "update", "delete"),
    "tag": ("create", "getAll", "update", "delete"),
    "event": ("create", "getAll", "update", "delete"),
}

MUTATING_OPERATIONS = frozenset({"create", "update", "delete"})


def split_command(command: str) -> tuple[str, str]:
    """Split ``"kind:operation"``; raises UnknownCommandError if it is not in the vocabulary."""
    kind, sep, operation = command.partition(":")
    if not sep or operation not in _OPERATIONS.get(kind, ()):
        raise UnknownCommandError(f"Unknown command '{command}'")
    return kind, operation


def to_wire(result: Any) -> Any:
    """Convert store results into plain, camelCase data."""
    if isinstance(result, BaseModel):
        return result.model_dump(by_alias=True)
    if isinstance(result, list):
        return [to_wire(item) for item in result]
    return result


class AccessFacade:
    """Routes command names to :class:`RecordStore` methods.

    Parameters
    ----------
    store : RecordStore
        The store every command is forwarded to.
    """

    def __init__(self, store: RecordStore):
        self._store = store
        self._handlers: dict[str, Callable[..., Any]] = {}
        for kind, operations in _OPERATIONS.items():
            for operation in operations:
                self._handlers[f"{kind}:{operation}"] = self._bind(kind, operation)

    @property
    def store(self) -> RecordStore:
        return self._store

    def _bind(self, kind: str, operation: str) -> Callable[..., Any]:
        store = self._store
        if operation == "create":
            return lambda payload: store.create(kind, payload)
        if operation == "getAll":
            return lambda project_id=None: store.get_all(kind, project_id)
        if operation == "get":
            return lambda record_id: store.get(kind, record_id)
        if operation == "update":
            return lambda record_id, partial: store.update(kind, record_id, partial)
        return lambda record_id: store.delete(kind, record_id)

    @staticmethod
    def commands() -> list[str]:
        """Return every command name in the vocabulary."""
        return [f"{kind}:{op}" for kind, ops in _OPERATIONS.items() for op in ops]

    def dispatch(self, command: str, *args: Any) -> Any:
        """Run *command* with *args* and return its plain-data result.

        Raises
        ------
        UnknownCommandError
            If *command* is not in the vocabulary or was given the wrong
            number of arguments.
        ConstraintError, StorageError
            Propagated unchanged from the store.
        """
        split_command(command)
        handler = self._handlers[command]
        try:
            inspect.signature(handler).bind(*args)
        except TypeError as exc:
            raise UnknownCommandError(f"Bad arguments for '{command}': {exc}") from exc

        logger.debug("dispatch %s %r", command, args)
        return to_wire(handler(*args))
