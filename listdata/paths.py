"""
Filesystem locations for the list engine.

Everything the engine writes lives under one home directory so tests and
multiple installs can be kept apart by setting LISTDATA_HOME.
"""

from __future__ import annotations

import os
from pathlib import Path

HOME_ENV = "LISTDATA_HOME"
DB_ENV = "LISTDATA_DB"
DB_FILENAME = "listdata.db"


def _from_env(var: str) -> Path | None:
    raw = os.environ.get(var)
    return Path(raw).expanduser().resolve() if raw else None


def app_home() -> Path:
    """LISTDATA_HOME, else ~/.listdata."""
    return _from_env(HOME_ENV) or (Path.home() / ".listdata").resolve()


def data_dir() -> Path:
    """<home>/data, created on first use."""
    path = app_home() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def db_path() -> Path:
    """SQLite file holding lists, rows and the issue cache.

    LISTDATA_DB wins over the default <home>/data/listdata.db.
    """
    return _from_env(DB_ENV) or data_dir() / DB_FILENAME
