"""
Database Abstraction Layer.

Manages the raw SQLite connections used by PocketAuth.  Two independent
stores are opened at startup, each through its own ``DatabaseManager``:

- **User store**: the relational ``users`` table (see ``schema.py``).
- **Session store**: a small key-value table holding the session flag
  and the cached snapshot of the last logged-in user.

Data access is performed through repositories and services.  This
module only manages *connections*; it contains no query logic.

Usage (dependency injection at app startup)::

    from pocketauth.database import DatabaseManager
    from pocketauth.logger import StructuredLogger

    db = DatabaseManager(
        sqlite_path=Path("auth.db"),
        logger=StructuredLogger(name="database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from pocketauth.exceptions import StorageUnavailable
from pocketauth.logger import StructuredLogger


class DatabaseManager:
    """Owns a single SQLite connection.

    Fully configured at construction time via dependency injection.

    Parameters
    ----------
    sqlite_path:
        Filesystem path for the SQLite database file, or ``":memory:"``.
        Parent directories are created when missing.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.

    Raises
    ------
    StorageUnavailable
        If the database file cannot be opened.
    """

    def __init__(self, sqlite_path: Path | str, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._closed: bool = False
        self._path: str = str(sqlite_path)
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(self._path)

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the SQLite connection.

        Raises
        ------
        StorageUnavailable
            If the connection has already been closed.
        """
        if self._closed:
            raise StorageUnavailable(
                details={"path": self._path, "reason": "connection closed"},
            )
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Return the write lock for SQLite writes.

        All code that performs SQLite writes (INSERT, UPDATE, DELETE,
        or any operation followed by ``commit()``) acquires this lock::

            with db.write_lock:
                db.sqlite.execute("INSERT ...")
                db.sqlite.commit()
        """
        return self._write_lock

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the SQLite connection.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        with self._write_lock:
            if self._closed:
                return
            try:
                self._sqlite_conn.close()
                self._logger.info("SQLite connection closed: %s", self._path)
            except sqlite3.ProgrammingError:
                pass
            self._closed = True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_sqlite(self, path: str) -> sqlite3.Connection:
        """Open (or create) a SQLite database.

        Returns a connection with ``row_factory`` set to ``sqlite3.Row``
        for dict-like row access.

        Raises
        ------
        StorageUnavailable
            If the OS denies access or SQLite cannot open the file.
        """
        conn: Optional[sqlite3.Connection] = None
        try:
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except (OSError, sqlite3.Error) as exc:
            if conn is not None:
                conn.close()
            msg = (
                f"Cannot open the local database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process."
            )
            self._logger.error(msg, exc_info=True)
            raise StorageUnavailable(msg, details={"path": path}) from exc
