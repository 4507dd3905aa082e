"""Key-value persistence backed by the SQLite kv_store table.

The stores only depend on the ``get``/``set``/``remove`` contract below. Every
failure is logged here and reported as "absent" or ``False``; nothing raises
past this module.
"""
import logging
import sqlite3
from typing import Iterable, Protocol

from progress_tracker.db import DEFAULT_DB_PATH, get_connection, init_db

logger = logging.getLogger(__name__)

SUBJECTS_KEY = "subjects"
THEME_KEY = "theme"


class Storage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> bool: ...

    def remove(self, keys: Iterable[str]) -> bool: ...


class SqliteStorage:
    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def init(self) -> bool:
        """Create the database file and table. Returns False if that failed."""
        try:
            init_db(self.db_path)
        except (sqlite3.Error, OSError):
            logger.exception("Error initializing storage at %s", self.db_path)
            return False
        return True

    def get(self, key: str) -> str | None:
        try:
            conn = get_connection(self.db_path)
            try:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Error reading %r", key)
            return None
        return row["value"] if row else None

    def set(self, key: str, value: str) -> bool:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    "INSERT INTO kv_store (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
                    (key, value, value),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Error saving %r", key)
            return False
        return True

    def remove(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        try:
            conn = get_connection(self.db_path)
            try:
                conn.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Error removing %s", keys)
            return False
        return True


def clear_all_data(storage: Storage) -> bool:
    """Drop both persisted records (subjects and theme)."""
    return storage.remove([SUBJECTS_KEY, THEME_KEY])
