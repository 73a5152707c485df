"""Location of the per-user data directory and the roster database."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from .schema import initialize_schema

APP_DIR_NAME = "ShuttleBracket"
DB_FILENAME = "roster.db"
IN_MEMORY = ":memory:"


def _platform_data_root() -> Path:
    if os.name == "nt":
        for variable in ("APPDATA", "LOCALAPPDATA"):
            value = os.environ.get(variable)
            if value:
                return Path(value)
        return Path.home() / "AppData" / "Roaming"
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    return Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"


def get_app_data_dir() -> Path:
    """Return the application directory, creating it on first use."""
    app_dir = _platform_data_root() / APP_DIR_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_default_database_path() -> Path:
    return get_app_data_dir() / DB_FILENAME


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Open the roster database and make sure its tables exist.

    ``IN_MEMORY`` opens a throwaway database that is never written to disk.
    """
    if db_path == IN_MEMORY:
        target = IN_MEMORY
    else:
        target = str(db_path or get_default_database_path())
    connection = sqlite3.connect(target)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    initialize_schema(connection)
    return connection
