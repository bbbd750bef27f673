"""
User Models.

Pydantic models for the ``users`` table.  Column names in SQLite are
camelCase (``firstName``, ``contactNumber`` …); the models expose
snake_case attributes and accept either spelling on input through
field aliases.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    """The editable profile fields shared by every user-facing model."""

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    contact_number: Optional[str] = Field(default=None, alias="contactNumber")
    address: Optional[str] = None
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class User(UserProfile):
    """A registered account as returned to callers.

    The stored password hash is deliberately absent; it never leaves
    the repository layer.
    """

    id: int
    username: str


class UserRegistration(UserProfile):
    """Input for a new account.  ``password`` is the plaintext secret."""

    username: str
    password: str


class ProfileUpdate(UserProfile):
    """Replacement values for the six profile columns of one user."""

    @classmethod
    def from_user(cls, user: User, **changes: Optional[str]) -> "ProfileUpdate":
        """Build an update that keeps *user*'s current values except *changes*."""
        data = user.model_dump(include=set(UserProfile.model_fields))
        data.update(changes)
        return cls(**data)
