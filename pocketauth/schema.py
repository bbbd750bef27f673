"""
Centralized SQLite Schema Initialization.

Defines the canonical schema for the PocketAuth user store and provides
two entry points:

- :func:`initialize_schema` creates every table idempotently
  (create-if-absent).  Existing rows are never touched, so it is safe to
  call on every application launch.
- :func:`reset_schema` drops and recreates the ``users`` table.  This is
  destructive and only runs when a caller asks for it explicitly.

A single-row ``schema_version`` table records the applied version.

Usage::

    from pocketauth.logger import StructuredLogger
    from pocketauth.schema import initialize_schema

    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
"""

from __future__ import annotations

import sqlite3

from pocketauth.exceptions import StorageUnavailable
from pocketauth.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "USER_COLUMNS", "initialize_schema", "reset_schema"]

CURRENT_SCHEMA_VERSION: int = 1

USER_COLUMNS: tuple[str, ...] = (
    "id",
    "username",
    "password",
    "firstName",
    "lastName",
    "email",
    "contactNumber",
    "address",
    "profilePicture",
)

_USERS_DDL: str = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL,
        firstName TEXT,
        lastName TEXT,
        email TEXT UNIQUE,
        contactNumber TEXT,
        address TEXT,
        profilePicture TEXT
    )
"""

_TABLE_DEFINITIONS: list[str] = [
    # -- single-row version tracker -------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- registered accounts --------------------------------------------------
    _USERS_DDL,
]


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the stored schema version, or ``0`` if unset."""
    row = conn.execute(
        "SELECT version FROM schema_version WHERE id = 1"
    ).fetchone()
    return row[0] if row is not None else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Upsert the single-row version tracker to *version*.

    Does **not** commit; the caller is responsible for transaction
    management so that version updates are atomic with schema changes.
    """
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


def _create_all_tables(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Execute every DDL statement in :data:`_TABLE_DEFINITIONS`.

    Does **not** commit.
    """
    for ddl in _TABLE_DEFINITIONS:
        conn.execute(ddl)
    logger.info(
        f"All {len(_TABLE_DEFINITIONS)} tables created or verified successfully."
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the user store has every table at the current version.

    Uses ``CREATE TABLE IF NOT EXISTS`` throughout, so repeated calls
    neither fail nor lose rows.  The whole upgrade runs in one
    transaction; on failure it is rolled back.

    Raises:
        StorageUnavailable: If the tables cannot be created.  The caller
            must not proceed to any other operation.
    """
    try:
        _create_all_tables(conn, logger)
        current: int = _get_schema_version(conn)
        if current < CURRENT_SCHEMA_VERSION:
            _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
            logger.info(
                f"Schema initialised at version {CURRENT_SCHEMA_VERSION} "
                f"(was {current})."
            )
        else:
            logger.info(f"Schema is up to date (version {current}).")
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.error("Schema initialisation failed: %s", exc, exc_info=True)
        raise StorageUnavailable(
            "Could not initialise the local database.",
            details={"error": str(exc)},
        ) from exc


def reset_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Drop the ``users`` table and recreate it empty.

    Every registered account is lost.  Used only by an explicit
    database reset, never at startup.

    Raises:
        StorageUnavailable: If the drop or the re-create fails.
    """
    try:
        conn.execute("DROP TABLE IF EXISTS users")
        _create_all_tables(conn, logger)
        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.error("Schema reset failed: %s", exc, exc_info=True)
        raise StorageUnavailable(
            "Could not reset the local database.",
            details={"error": str(exc)},
        ) from exc

    logger.info("Database and table reset successfully.")
