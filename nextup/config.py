"""
FILE: nextup/config.py
PURPOSE: Application settings (database location, default owner, Upcoming horizon, logging)
EXPORTS:
  - DB_DIR, DB_PATH: SQLite database location
  - UPCOMING_DAYS: Default Upcoming horizon in days
  - LOG_LEVEL, LOG_FILE: Logging configuration
  - default_owner() -> str
DEPENDENCIES:
  - os, getpass, pathlib (stdlib)
  - nextup.core.constants (DEFAULT_UPCOMING_DAYS)
NOTES:
  - Every setting can be overridden with a NEXTUP_* environment variable
  - Values are read once at import; tests monkeypatch the module attributes
"""

import getpass
import os
from pathlib import Path
from typing import Optional

from .core.constants import DEFAULT_UPCOMING_DAYS

ENV_PREFIX = "NEXTUP"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Optional[Path]) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


# Database file location (cross-platform)
DB_DIR = _env_path(_k("HOME"), Path.home() / ".nextup")
DB_PATH = _env_path(_k("DB"), DB_DIR / "nextup.db")

# Views
UPCOMING_DAYS = _env_int(_k("UPCOMING_DAYS"), DEFAULT_UPCOMING_DAYS)

# Logging
LOG_LEVEL = _env(_k("LOG_LEVEL"), "WARNING").upper()
LOG_FILE = _env_path(_k("LOG_FILE"), None)


def default_owner() -> str:
    """Owner used when the CLI is not given --user: NEXTUP_USER, then the OS login."""
    owner = _env(_k("USER")).strip()
    if owner:
        return owner
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "default"
