# Rev 0.3.0

"""Paths and XDG helpers (Rev 0.3.0)
- Uses XDG Base Directory locations for data and config (logs: see logging_setup)
- DB defaults to $XDG_DATA_HOME/zenboard/zenboard.db, override with ZENBOARD_DB
- SQL migrations ship inside the package (zenboard/data/migrations)
"""
from __future__ import annotations
import os
from pathlib import Path


APP_NAME = "zenboard"


XDG_DATA_HOME = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
XDG_CONFIG_HOME = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


DATA_DIR = XDG_DATA_HOME / APP_NAME
CONFIG_DIR = XDG_CONFIG_HOME / APP_NAME


PACKAGE_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = (PACKAGE_ROOT / "data" / "migrations").resolve()


def default_db_path() -> Path:
    env = os.environ.get("ZENBOARD_DB")
    if env:
        return Path(env).expanduser()
    return DATA_DIR / "zenboard.db"


def config_dir() -> Path:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR

