"""
PocketAuth Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local SQLite user store, and restores the previous session if the
persisted session flag is still valid.  Every subsystem is wired here;
no module-level globals.

A presentation layer embeds this by calling :func:`bootstrap` and
keeping the returned ``AuthService``.

Usage::

    python main.py
"""

from __future__ import annotations

import atexit
import sys
from typing import NamedTuple

from pocketauth.auth import SessionManager
from pocketauth.config import AppConfig, get_config
from pocketauth.database import DatabaseManager
from pocketauth.exceptions import StorageUnavailable
from pocketauth.logger import StructuredLogger, get_logger
from pocketauth.services import ServiceContainer, create_services


class Application(NamedTuple):
    """Everything a presentation layer needs after startup."""

    config: AppConfig
    session: SessionManager
    services: ServiceContainer
    user_db: DatabaseManager
    session_db: DatabaseManager

    def close(self) -> None:
        self.user_db.close()
        self.session_db.close()


def bootstrap(config: AppConfig | None = None) -> Application:
    """Wire dependencies, create the schema and restore the last session.

    Raises:
        StorageUnavailable: Either store cannot be opened or initialised.
    """
    config = config or get_config()

    # ------------------------------------------------------------------
    # 1. Database managers (relational user store + key-value store)
    # ------------------------------------------------------------------
    user_db = DatabaseManager(
        sqlite_path=config.USER_DB_PATH,
        logger=StructuredLogger(name="database"),
    )
    session_db = DatabaseManager(
        sqlite_path=config.SESSION_DB_PATH,
        logger=StructuredLogger(name="database"),
    )
    atexit.register(user_db.close)
    atexit.register(session_db.close)

    # ------------------------------------------------------------------
    # 2. Session manager + services
    # ------------------------------------------------------------------
    session = SessionManager()
    services = create_services(
        user_db=user_db,
        session_db=session_db,
        config=config,
        session=session,
    )
    auth_service = services["auth_service"]

    # ------------------------------------------------------------------
    # 3. Schema (idempotent, never destructive)
    # ------------------------------------------------------------------
    auth_service.init_database()

    # ------------------------------------------------------------------
    # 4. Relaunch path
    # ------------------------------------------------------------------
    auth_service.restore_session()

    return Application(
        config=config,
        session=session,
        services=services,
        user_db=user_db,
        session_db=session_db,
    )


def main() -> int:
    """Boot the stack and report the session state."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting PocketAuth...")

    try:
        app = bootstrap()
    except StorageUnavailable as exc:
        logger.critical("Startup aborted: %s", exc.message, extra=exc.details)
        return 1

    try:
        user = app.session.current_user
        if user is not None:
            logger.info(
                "Session restored for %s.", user.username,
                extra={"event": "STARTUP", "user_id": user.id},
            )
        else:
            logger.info("No active session; login required.", extra={"event": "STARTUP"})
        return 0
    finally:
        app.close()
        logger.info("PocketAuth shut down.")


if __name__ == "__main__":
    sys.exit(main())
