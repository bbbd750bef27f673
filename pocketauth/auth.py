"""
Authentication & Session State.

Provides an injectable ``SessionManager`` that holds the authenticated
user for the lifetime of one application session.  The session is
created on login (or on a successful restore at launch) and destroyed
on logout.

Usage::

    from pocketauth.auth import SessionManager

    session = SessionManager()
    session.create(user)
    user = session.get_current_user()
    session.destroy()
"""

from __future__ import annotations

import threading
from typing import Optional

from pocketauth.models.user import User


class SessionManager:
    """Injectable holder for the current authenticated user.

    Each instance maintains its own session state, so no module-level
    globals are needed.  Pass a single ``SessionManager`` to every
    component that needs to know who is logged in.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._current_user: Optional[User] = None

    def create(self, user: User) -> None:
        """Start a session for *user*, replacing any existing one."""
        with self._lock:
            self._current_user = user

    def get_current_user(self) -> User:
        """Return the authenticated user.

        Raises:
            RuntimeError: If no user is currently authenticated.
        """
        with self._lock:
            if self._current_user is None:
                raise RuntimeError(
                    "No user is currently authenticated. Login required."
                )
            return self._current_user

    @property
    def current_user(self) -> Optional[User]:
        """The authenticated user, or ``None``."""
        with self._lock:
            return self._current_user

    def destroy(self) -> None:
        """End the session.  Safe to call when no session exists."""
        with self._lock:
            self._current_user = None

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a user is currently logged in."""
        with self._lock:
            return self._current_user is not None
