"""SQLite-backed local cache for instant hydration and offline backup."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

KEY_PREFIX = "lifesync_data_"


def cache_key(user_id: str) -> str:
    """Cache key for a user's working set."""
    return f"{KEY_PREFIX}{user_id}"


class LocalCache:
    """Simple key-value store on top of SQLite."""

    def __init__(self, db_path: str = "data/cache.db"):
        """Initialize database."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create cache table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
        logger.info(f"Local cache initialized at {self.db_path}")

    def get(self, key: str) -> Optional[str]:
        """Get serialized state by key."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM cache WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        """Insert or replace serialized state."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO cache (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat()),
            )
            conn.commit()

    def remove(self, key: str):
        """Delete a key; missing keys are ignored."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            conn.commit()
        logger.info(f"Removed cache entry {key}")
