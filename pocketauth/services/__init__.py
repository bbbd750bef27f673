"""
Business Logic Services Package.

Services depend on the Repository layer for relational data access and
on the key-value store for session persistence.

The ``create_services()`` factory wires every repository and service
together, returning a typed dict that the entry point (or a
presentation layer) can consume without knowing the dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from pocketauth.auth import SessionManager
from pocketauth.config import AppConfig
from pocketauth.database import DatabaseManager
from pocketauth.logger import StructuredLogger, get_logger
from pocketauth.repositories.user_repository import UserRepository
from pocketauth.services.auth_service import AuthService
from pocketauth.services.key_value_store import KeyValueStore
from pocketauth.services.session_cache import SessionCacheService


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    auth_service: AuthService
    session_cache: SessionCacheService
    key_value_store: KeyValueStore
    user_repository: UserRepository


def create_services(
    user_db: DatabaseManager,
    session_db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    logger: StructuredLogger | None = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry point calls this once at startup.

    Args:
        user_db: Open ``DatabaseManager`` for the relational user store.
        session_db: Open ``DatabaseManager`` for the key-value store.
        config: Application configuration.
        session: The shared in-memory session holder.
        logger: Logger for every service; defaults to ``"services"``.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.

    Raises:
        StorageUnavailable: The key-value table could not be created.
    """
    logger = logger or get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(db=user_db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Session persistence
    # ------------------------------------------------------------------
    key_value_store = KeyValueStore(db=session_db, logger=logger)
    session_cache = SessionCacheService(
        store=key_value_store,
        logger=logger,
        salt_path=config.SESSION_SALT_PATH,
        max_age_days=config.SESSION_MAX_AGE_DAYS,
        key_iterations=config.SESSION_KEY_ITERATIONS,
    )

    # ------------------------------------------------------------------
    # 3. Facade
    # ------------------------------------------------------------------
    auth_service = AuthService(
        db=user_db,
        user_repo=user_repo,
        session=session,
        session_cache=session_cache,
        store=key_value_store,
        config=config,
        logger=logger,
    )

    return ServiceContainer(
        auth_service=auth_service,
        session_cache=session_cache,
        key_value_store=key_value_store,
        user_repository=user_repo,
    )
