"""
Error taxonomy for the authentication core.

Every failure that crosses the service boundary is an ``AuthStoreError``
carrying a human-readable ``message`` that the presentation layer can
show as-is.  A login that finds no matching credentials is *not* an
error; ``AuthService.login_user`` returns ``None`` for it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AuthStoreError(Exception):
    """Base class for all authentication-core exceptions."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class StorageUnavailable(AuthStoreError):
    """The embedded store could not be opened or queried."""

    def __init__(
        self,
        message: str = "Local storage is unavailable. Please try again.",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)


class DuplicateCredential(AuthStoreError):
    """An insert or update violated the username/email uniqueness rule.

    ``field`` names the conflicting column when the driver reports it,
    otherwise ``None``.
    """

    def __init__(
        self,
        message: str = "Username or Email already exists",
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.field = field
        super().__init__(message, details)


class ValidationFailed(AuthStoreError):
    """Client-side field validation rejected the input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.field = field
        super().__init__(message, details)
