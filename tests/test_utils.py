"""
Tests for utility helpers used for data directory and connection resolution.
"""

from pathlib import Path

from sqlalchemy.engine import make_url

from utils import ensure_data_dir, resolve_connection_string, resolve_log_path


def test_ensure_data_dir_creates_directory(tmp_path):
    """ensure_data_dir should create the configured directory when missing."""
    config = {"database": {"data_dir": str(tmp_path / "ledger_data")}}
    data_dir = ensure_data_dir(config)

    assert data_dir.is_dir()
    assert data_dir == tmp_path / "ledger_data"


def test_resolve_connection_string_default(monkeypatch, tmp_path):
    """resolve_connection_string should build a sqlite URL under the data dir."""
    monkeypatch.delenv("DB_CONNECTION_STRING", raising=False)
    data_dir = tmp_path / "app_data"
    config = {"database": {"data_dir": str(data_dir), "path": "budget.db"}}

    url = make_url(resolve_connection_string(config))

    assert url.drivername.startswith("sqlite")
    assert Path(url.database) == data_dir / "budget.db"
    assert data_dir.exists()


def test_config_connection_string_beats_data_dir(monkeypatch, tmp_path):
    """An explicit connection string in config wins over data_dir/path."""
    monkeypatch.delenv("DB_CONNECTION_STRING", raising=False)
    db_path = tmp_path / "explicit" / "ledger.db"
    config = {"database": {"connection_string": f"sqlite:///{db_path.as_posix()}", "data_dir": "unused"}}

    assert resolve_connection_string(config) == f"sqlite:///{db_path.as_posix()}"
    assert db_path.parent.exists()


def test_resolve_connection_string_env_override(monkeypatch, tmp_path):
    """Environment variable should take precedence over config/defaults."""
    db_path = tmp_path / "env_override" / "ledger.db"
    env_connection = f"sqlite:///{db_path.as_posix()}"
    monkeypatch.setenv("DB_CONNECTION_STRING", env_connection)

    config = {"database": {"connection_string": "sqlite:///ignored.db"}}

    assert resolve_connection_string(config) == env_connection
    assert db_path.parent.exists()


def test_in_memory_sqlite_needs_no_directory(monkeypatch):
    monkeypatch.setenv("DB_CONNECTION_STRING", "sqlite:///:memory:")

    assert resolve_connection_string({}) == "sqlite:///:memory:"


def test_absolute_log_path_is_kept(tmp_path):
    """Absolute log paths are used as-is and their directory is created."""
    resolved = resolve_log_path(str(tmp_path / "logs" / "ledger.log"))

    assert resolved == tmp_path / "logs" / "ledger.log"
    assert resolved.parent.is_dir()
