"""
Database connection and initialization.
"""
from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from .schema import all_schema_sql

DB_PATH_ENV = "GOLF_LEAGUE_DB_PATH"


def _run_phase_scores_scorecard_image(conn: sqlite3.Connection) -> None:
    """Add scorecard_image to scores for databases created before photo upload."""
    cur = conn.execute("PRAGMA table_info(scores)")
    cols = [row[1] for row in cur.fetchall()]
    if "scorecard_image" not in cols:
        conn.execute("ALTER TABLE scores ADD COLUMN scorecard_image TEXT")


def _run_phase_matches_is_manual(conn: sqlite3.Connection) -> None:
    """Add is_manual to matches. Existing rows were all generated."""
    cur = conn.execute("PRAGMA table_info(matches)")
    cols = [row[1] for row in cur.fetchall()]
    if "is_manual" not in cols:
        conn.execute("ALTER TABLE matches ADD COLUMN is_manual INTEGER NOT NULL DEFAULT 0")


# Default DB path (project root / data / league.db)
def _default_db_path() -> Path:
    return Path(__file__).resolve().parent.parent.parent / "data" / "league.db"


_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path: explicit, then $GOLF_LEAGUE_DB_PATH, then default."""
    if _db_path is not None:
        return _db_path
    env_path = os.environ.get(DB_PATH_ENV)
    if env_path:
        return Path(env_path)
    return _default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection.
    Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str | Path | None = None) -> None:
    """Create or ensure all tables exist."""
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(all_schema_sql())
        _run_phase_scores_scorecard_image(conn)
        _run_phase_matches_is_manual(conn)
        conn.commit()
    finally:
        conn.close()
