"""
Path and connection helpers for the ledger's on-disk resources.

Resolves where the SQLite ledger and log files live so config files,
environment overrides and tests agree on one location.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent
LEDGER_DB_NAME = "budget.db"
LEDGER_DATA_DIR = "data"
CONNECTION_ENV_VAR = "DB_CONNECTION_STRING"


def get_project_root() -> Path:
    """Directory relative paths in the config are anchored to."""
    return PROJECT_ROOT


def _anchor(path_value: str | Path) -> Path:
    path = Path(path_value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def _database_section(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return (config or {}).get("database") or {}


def get_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """
    Directory holding the ledger database; not created here.

    Args:
        config: Configuration dictionary; database.data_dir overrides the default
    """
    return _anchor(_database_section(config).get("data_dir") or LEDGER_DATA_DIR)


def ensure_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """Create the data directory if needed and return it."""
    data_dir = get_data_dir(config)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create data directory %s: %s", data_dir, exc)
        raise
    return data_dir


def sqlite_file_for(connection_string: str) -> Optional[Path]:
    """
    Database file behind a SQLite URL.

    Returns:
        Absolute Path, or None for non-SQLite URLs, in-memory databases and
        strings that are not valid URLs
    """
    try:
        url = make_url(connection_string)
    except ArgumentError:
        logger.debug("Not a database URL: %s", connection_string)
        return None
    if not url.drivername.startswith("sqlite") or url.database in (None, "", ":memory:"):
        return None
    return _anchor(url.database)


def _prepare(connection_string: str) -> str:
    db_file = sqlite_file_for(connection_string)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)
    return connection_string


def resolve_connection_string(config: Optional[Dict[str, Any]] = None) -> str:
    """
    Pick the SQLAlchemy URL for the ledger store.

    The DB_CONNECTION_STRING environment variable wins, then
    database.connection_string from the config, then a SQLite file named
    database.path inside the data directory. The directory of a SQLite file
    is created when missing.

    Args:
        config: Configuration dictionary

    Returns:
        SQLAlchemy connection string
    """
    from_env = os.environ.get(CONNECTION_ENV_VAR)
    if from_env:
        logger.debug("Using connection string from %s", CONNECTION_ENV_VAR)
        return _prepare(from_env)

    db_config = _database_section(config)
    if db_config.get("connection_string"):
        return _prepare(db_config["connection_string"])

    db_file = Path(db_config.get("path") or LEDGER_DB_NAME)
    if not db_file.is_absolute():
        db_file = ensure_data_dir(config) / db_file
    return _prepare(f"sqlite:///{db_file.as_posix()}")


def resolve_log_path(log_path: str) -> Path:
    """Absolute path for the log file, with its directory created."""
    resolved = _anchor(log_path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved
