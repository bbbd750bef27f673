"""
Repository Layer Package.

Provides data-access abstractions over the local SQLite user store.
All relational operations flow through repositories; services never
query ``users`` directly.

Usage:
    from pocketauth.repositories.user_repository import UserRepository
"""

from pocketauth.repositories.base_repository import BaseRepository
from pocketauth.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
]
