"""
Database connection and initialization.
"""
from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from .schema import all_schema_sql


def _run_phase_leagues_previous_league_id(conn: sqlite3.Connection) -> None:
    """Add previous_league_id to leagues. Lets lineage be audited without re-fetching upstream."""
    cur = conn.execute("PRAGMA table_info(leagues)")
    cols = [row[1] for row in cur.fetchall()]
    if "previous_league_id" not in cols:
        conn.execute("ALTER TABLE leagues ADD COLUMN previous_league_id TEXT")


# Default DB path (project root / data / league_history.db), overridable via LEAGUE_HISTORY_DB
def _default_db_path() -> Path:
    env_path = os.environ.get("LEAGUE_HISTORY_DB")
    if env_path:
        return Path(env_path)
    return Path(__file__).resolve().parent.parent.parent / "data" / "league_history.db"


_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path."""
    if _db_path is not None:
        return _db_path
    return _default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection.
    Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str | Path | None = None) -> None:
    """Create or ensure all tables exist, then apply column migrations."""
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(all_schema_sql())
        _run_phase_leagues_previous_league_id(conn)
        conn.commit()
    finally:
        conn.close()
