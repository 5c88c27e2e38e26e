"""
story_app/config.py -- Runtime settings.

Settings come from environment variables with platform defaults:

    STORY_MANAGER_DATA_DIR   directory holding the database (default: user data dir)
    STORY_MANAGER_DB         explicit database file, overrides the data dir
    STORY_MANAGER_LOG_LEVEL  logging level name (default: INFO)
    STORY_MANAGER_LOG_FILE   optional log file, in addition to stderr

Empty variables count as unset.

Usage::

    from story_app.config import load_settings

    settings = load_settings()
    store = RecordStore(settings.db_path)
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from story_app.paths import get_default_db_path

ENV_PREFIX = "STORY_MANAGER_"


class Settings(BaseSettings):
    """Resolved application settings."""

    # Declared before db_path: the db_path validator reads it.
    data_dir: Optional[str] = None
    db_path: str = Field(
        default="",
        validation_alias=AliasChoices("db_path", f"{ENV_PREFIX}DB"),
        validate_default=True,
    )
    log_level: int = logging.INFO
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        frozen=True,
        extra="ignore",
    )

    @field_validator("db_path")
    @classmethod
    def _default_db_path(cls, value: str, info: ValidationInfo) -> str:
        """Fall back to the database file inside the data directory."""
        if value:
            return value
        return get_default_db_path(info.data.get("data_dir"))

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value):
        """Accept a level name (any case) or a numeric level."""
        if isinstance(value, int):
            return value
        level = logging.getLevelName(str(value).strip().upper())
        if not isinstance(level, int):
            raise ValueError(f"{ENV_PREFIX}LOG_LEVEL has an unknown level: {value!r}")
        return level


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment.

    Raises
    ------
    pydantic.ValidationError
        A ``ValueError`` subclass, if a variable holds an invalid value.
    """
    return Settings()
