"""
Authentication Pipeline Models.

Pydantic models for the contracts between ``AuthService``, the session
cache, and the presentation layer.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from pocketauth.models.user import User


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes the validation rule.
    error_message:
        Human-readable description of the failure, or ``None`` on success.
    field:
        Name of the offending field, or ``None`` on success.
    """

    is_valid: bool
    error_message: Optional[str] = None
    field: Optional[str] = None


# ---------------------------------------------------------------------------
# Session cache model
# ---------------------------------------------------------------------------

class CachedSession(BaseModel):
    """The decrypted ``loggedInUser`` snapshot.

    Attributes
    ----------
    user:
        Copy of the authenticated user record at login time.
    cached_at:
        ISO-8601 UTC timestamp indicating when the snapshot was written.
    """

    user: User
    cached_at: str  # ISO-8601 UTC
