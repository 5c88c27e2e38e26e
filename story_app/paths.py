"""
story_app/paths.py -- Path resolution for frozen and development modes.

Detects PyInstaller bundles and uses platformdirs for the user data
directory that holds the story database.
"""

from __future__ import annotations

import os
import sys

from platformdirs import user_data_dir

APP_NAME = "StoryManager"
APP_AUTHOR = "StoryManager"
DB_FILENAME = "story-management.db"


def is_frozen() -> bool:
    """Return True if running from a PyInstaller bundle."""
    return getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS")


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory."""
    path = user_data_dir(APP_NAME, APP_AUTHOR)
    os.makedirs(path, exist_ok=True)
    return path


def get_default_db_path(data_dir: str | None = None) -> str:
    """Return the story database path inside *data_dir* (or the user data dir)."""
    return os.path.join(data_dir or get_user_data_dir(), DB_FILENAME)
