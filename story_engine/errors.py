"""
story_engine/errors.py -- Error taxonomy for the record store.

Every failure that leaves the store is one of these types so the
presentation layer can show a single "operation failed" notice without
knowing anything about SQLite or pydantic.

    StoryStoreError
        ConstraintError      uniqueness / shape violation on write
        NotFoundError        lookup miss (most paths return None/False instead)
        StorageError         engine-level I/O failure (disk full, corruption)
        UnknownCommandError  facade received a command outside its vocabulary

``MigrationWarning`` is a warning category, not an exception: migration
problems are logged and the application keeps running.
"""


class StoryStoreError(Exception):
    """Base class for all record store failures."""


class ConstraintError(StoryStoreError):
    """A write violated a uniqueness or shape constraint."""


class NotFoundError(StoryStoreError):
    """A record that the caller required does not exist."""


class StorageError(StoryStoreError):
    """The storage engine failed underneath an operation."""


class UnknownCommandError(StoryStoreError, ValueError):
    """A facade command name is not part of the command vocabulary."""


class MigrationWarning(UserWarning):
    """A schema migration step failed; the store opened regardless."""
