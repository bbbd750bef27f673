"""
Data Models Package.

Re-exports the Pydantic models callers work with:
    from pocketauth.models import User, UserRegistration, ProfileUpdate
    from pocketauth.models import CachedSession, ValidationResult
"""

from pocketauth.models.auth_models import CachedSession, ValidationResult
from pocketauth.models.user import ProfileUpdate, User, UserRegistration

__all__ = [
    "CachedSession",
    "ProfileUpdate",
    "User",
    "UserRegistration",
    "ValidationResult",
]
