"""
Key-Value Store Service.

Persistent string-to-string storage for device-wide flags, kept in its
own SQLite file so it is independent of the relational user store::

    CREATE TABLE IF NOT EXISTS key_value (
        key        TEXT PRIMARY KEY,
        value      TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )

This is infrastructure state rather than domain data, so it talks to
SQLite directly instead of going through a repository.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from pocketauth.database import DatabaseManager
from pocketauth.exceptions import StorageUnavailable
from pocketauth.logger import StructuredLogger

KEY_IS_LOGGED_IN: str = "isLoggedIn"
KEY_LOGGED_IN_USER: str = "loggedInUser"
KEY_DB_INITIALIZED: str = "dbInitialized"


class KeyValueStore:
    """Read/write/remove access to the ``key_value`` table.

    Reads and writes never raise: failures are logged and reported as
    ``None`` / ``False`` so that a broken cache cannot block the caller.

    Parameters
    ----------
    db:
        ``DatabaseManager`` for the session store file.
    logger:
        Structured logger instance.

    Raises
    ------
    StorageUnavailable
        If the ``key_value`` table cannot be created.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger
        self._ensure_table()

    def get(self, key: str) -> Optional[str]:
        """Read a value by key.  Returns ``None`` if not found."""
        try:
            row = self._db.sqlite.execute(
                "SELECT value FROM key_value WHERE key = ?",
                (key,),
            ).fetchone()
            return row["value"] if row is not None else None
        except (sqlite3.Error, StorageUnavailable) as exc:
            self._logger.warning("Failed to read key_value[%s]: %s", key, exc)
            return None

    def set(self, key: str, value: str) -> bool:
        """Upsert a value.  Returns ``True`` on success."""
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    """
                    INSERT INTO key_value (key, value)
                    VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value      = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
                self._db.sqlite.commit()
            self._logger.debug("key_value[%s] updated.", key)
            return True
        except (sqlite3.Error, StorageUnavailable) as exc:
            self._logger.error("Failed to write key_value[%s]: %s", key, exc)
            return False

    def remove(self, key: str) -> bool:
        """Delete *key*.  Removing an absent key succeeds."""
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    "DELETE FROM key_value WHERE key = ?", (key,),
                )
                self._db.sqlite.commit()
            self._logger.debug("key_value[%s] removed.", key)
            return True
        except (sqlite3.Error, StorageUnavailable) as exc:
            self._logger.error("Failed to remove key_value[%s]: %s", key, exc)
            return False

    def _ensure_table(self) -> None:
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    """
                    CREATE TABLE IF NOT EXISTS key_value (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
                self._db.sqlite.commit()
        except sqlite3.Error as exc:
            self._logger.error("Could not create key_value table: %s", exc)
            raise StorageUnavailable(
                "Could not open the session store.",
                details={"error": str(exc)},
            ) from exc
