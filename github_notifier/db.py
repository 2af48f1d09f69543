"""SQLite persistence of the serialized notifier state."""

import json
import logging
import sqlite3
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

STATE_KEY = "state"


def init_db(db_path: str) -> sqlite3.Connection:
    """
    Initialize the database and create tables if they don't exist.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        A connection to the database.
    """
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)
    conn.commit()
    return conn


def get_meta(conn: sqlite3.Connection, key: str) -> Optional[str]:
    """
    Get a metadata value from the database.

    Returns:
        The metadata value, or None if not found.
    """
    cursor = conn.execute("SELECT value FROM meta WHERE key = ?", (key,))
    row = cursor.fetchone()
    return row[0] if row else None


def set_meta(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
        (key, value)
    )
    conn.commit()


def load_state(conn: sqlite3.Connection) -> Optional[Dict[str, Any]]:
    """
    Load the persisted state snapshot.

    Returns:
        The snapshot dict, or None if nothing usable was stored.
    """
    raw = get_meta(conn, STATE_KEY)
    if raw is None:
        return None
    try:
        snapshot = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Ignoring unreadable persisted state: {e}")
        return None
    if not isinstance(snapshot, dict):
        logger.warning(f"Ignoring persisted state of type {type(snapshot).__name__}")
        return None
    return snapshot


def save_state(conn: sqlite3.Connection, snapshot: Dict[str, Any]) -> None:
    """Persist a state snapshot, replacing the previous one."""
    set_meta(conn, STATE_KEY, json.dumps(snapshot))


def clear_state(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM meta WHERE key = ?", (STATE_KEY,))
    conn.commit()
