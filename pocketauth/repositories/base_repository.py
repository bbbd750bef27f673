"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference
- Logger reference
- Commit and rollback helpers
- Translation of ``sqlite3`` errors into the application error taxonomy
"""

from __future__ import annotations

import re
import sqlite3
from typing import Optional

from pocketauth.database import DatabaseManager
from pocketauth.exceptions import AuthStoreError, DuplicateCredential, StorageUnavailable
from pocketauth.logger import StructuredLogger

# e.g. "UNIQUE constraint failed: users.email"
_UNIQUE_COLUMN_RE: re.Pattern[str] = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)")


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Returns the SQLite connection."""
        return self._db.sqlite

    def _commit(self) -> None:
        self.sqlite.commit()

    def _rollback(self) -> None:
        try:
            self.sqlite.rollback()
        except sqlite3.Error as exc:
            self._logger.warning("Rollback failed on %s: %s", self.TABLE, exc)

    def _translate_error(self, exc: sqlite3.Error, operation_name: str) -> AuthStoreError:
        """Log *exc* and map it onto the application error taxonomy.

        ``IntegrityError`` raised by a UNIQUE constraint becomes
        ``DuplicateCredential`` (with the column name when SQLite reports
        it); every other driver error becomes ``StorageUnavailable``.
        """
        if isinstance(exc, sqlite3.IntegrityError) and "UNIQUE" in str(exc):
            match = _UNIQUE_COLUMN_RE.search(str(exc))
            field: Optional[str] = match.group(1) if match else None
            self._logger.warning(
                "Uniqueness violation during %s (%s): %s",
                operation_name,
                field or "unknown column",
                exc,
            )
            return DuplicateCredential(field=field, details={"operation": operation_name})

        self._logger.error(
            "SQLite error during %s: %s", operation_name, exc, exc_info=True,
        )
        return StorageUnavailable(
            details={"operation": operation_name, "error": str(exc)},
        )
