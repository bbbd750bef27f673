"""
Authentication Service.

Single facade for every operation the presentation layer performs
against the local credential store: schema initialisation and reset,
registration, login, profile update, account deletion, logout, user
lookup, and session restore at launch.

Each operation performs one relational statement through
``UserRepository`` and, for login and logout, mirrors the outcome into
the ``SessionManager`` and the persisted ``SessionCacheService``.

Failures surface as ``AuthStoreError`` subclasses with human-readable
messages.  A login with wrong credentials is a normal negative result
and returns ``None``.
"""

from __future__ import annotations

import re
from typing import Optional

from pocketauth.auth import SessionManager
from pocketauth.config import AppConfig
from pocketauth.database import DatabaseManager
from pocketauth.exceptions import ValidationFailed
from pocketauth.logger import StructuredLogger
from pocketauth.models.auth_models import ValidationResult
from pocketauth.models.user import ProfileUpdate, User, UserRegistration
from pocketauth.repositories.user_repository import UserRepository
from pocketauth.schema import initialize_schema, reset_schema
from pocketauth.services.base_service import BaseService
from pocketauth.services.key_value_store import KEY_DB_INITIALIZED, KeyValueStore
from pocketauth.services.session_cache import SessionCacheService
from pocketauth.utils.passwords import dummy_verify, hash_password, verify_password


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# Matches C0 controls (U+0000–U+001F), DEL (U+007F), and C1 controls (U+0080–U+009F).
_CONTROL_CHAR_RE: re.Pattern[str] = re.compile(r"[\x00-\x1f\x7f-\x9f]")

_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("username", "Username"),
    ("password", "Password"),
    ("first_name", "First name"),
    ("last_name", "Last name"),
    ("email", "Email"),
    ("contact_number", "Contact number"),
    ("address", "Address"),
    ("profile_picture", "Profile picture"),
)

_TRIMMED_FIELDS: tuple[str, ...] = ("email", "contact_number")


def _is_utf8(value: str) -> bool:
    """``False`` for strings holding lone surrogates."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _trimmed(changes: dict[str, Optional[str]]) -> dict[str, str]:
    return {
        field: value.strip()
        for field, value in changes.items()
        if field in _TRIMMED_FIELDS and value is not None
    }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AuthService(BaseService):
    """Centralised authentication facade.

    Parameters
    ----------
    db:
        ``DatabaseManager`` for the relational user store.
    user_repo:
        Repository over the ``users`` table.
    session:
        Injectable in-memory session holder.
    session_cache:
        Persisted ``isLoggedIn`` flag and encrypted user snapshot.
    store:
        Key-value store, used here for the ``dbInitialized`` flag.
    config:
        Application configuration (hash iterations, form limits).
    logger:
        Structured JSON logger.
    """

    INVALID_CREDENTIALS_MESSAGE: str = "Invalid username or password"

    def __init__(
        self,
        db: DatabaseManager,
        user_repo: UserRepository,
        session: SessionManager,
        session_cache: SessionCacheService,
        store: KeyValueStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db
        self._user_repo: UserRepository = user_repo
        self._session: SessionManager = session
        self._session_cache: SessionCacheService = session_cache
        self._store: KeyValueStore = store
        self._config: AppConfig = config

    @property
    def session(self) -> SessionManager:
        return self._session

    # ==================================================================
    # Schema lifecycle
    # ==================================================================

    def init_database(self) -> None:
        """Create the ``users`` table if absent.

        Idempotent and never destructive.  Records ``dbInitialized`` in
        the key-value store.  The flag is informational only: nothing in
        this package reads it back, and the schema check always runs.

        Raises
        ------
        StorageUnavailable
            If the schema cannot be created.
        """
        initialize_schema(self._db.sqlite, self._logger)
        self._store.set(KEY_DB_INITIALIZED, "true")

    def reset_database(self) -> None:
        """Drop and recreate the ``users`` table, deleting every account.

        Leaves the session cache alone; callers wanting a clean slate
        should also call :meth:`logout_user`.

        Raises
        ------
        StorageUnavailable
            If the reset fails.
        """
        reset_schema(self._db.sqlite, self._logger)
        self._store.set(KEY_DB_INITIALIZED, "false")
        self._logger.warning(
            "User store reset; all accounts deleted.",
            extra={"event": "DATABASE_RESET"},
        )

    # ==================================================================
    # Validation helpers
    # ==================================================================

    @staticmethod
    def validate_email(email: Optional[str]) -> ValidationResult:
        """Validate an email address against a simplified RFC 5322 regex."""
        if not email or not email.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Email address is required.",
                field="email",
            )
        if not _EMAIL_RE.match(email.strip()):
            return ValidationResult(
                is_valid=False,
                error_message="Please enter a valid email address.",
                field="email",
            )
        return ValidationResult(is_valid=True)

    def validate_contact_number(self, contact_number: Optional[str]) -> ValidationResult:
        """Accept 1 to ``CONTACT_NUMBER_MAX_DIGITS`` ASCII digits."""
        max_digits: int = self._config.CONTACT_NUMBER_MAX_DIGITS
        value = (contact_number or "").strip()
        if not value:
            return ValidationResult(
                is_valid=False,
                error_message="Contact number is required.",
                field="contact_number",
            )
        if not re.fullmatch(rf"[0-9]{{1,{max_digits}}}", value):
            return ValidationResult(
                is_valid=False,
                error_message=f"Contact number must be at most {max_digits} digits.",
                field="contact_number",
            )
        return ValidationResult(is_valid=True)

    def validate_registration(self, registration: UserRegistration) -> ValidationResult:
        """Check that every registration field is present and well-formed.

        Returns the first failure found, in form order.
        """
        for field, label in _REQUIRED_FIELDS:
            value: Optional[str] = getattr(registration, field)
            if value is None or not value.strip():
                return ValidationResult(
                    is_valid=False,
                    error_message=f"{label} is required.",
                    field=field,
                )
            if not _is_utf8(value) or (
                field != "password" and _CONTROL_CHAR_RE.search(value)
            ):
                return ValidationResult(
                    is_valid=False,
                    error_message=(
                        f"{label} contains invalid characters. "
                        "Only printable characters are allowed."
                    ),
                    field=field,
                )

        email_check = self.validate_email(registration.email)
        if not email_check.is_valid:
            return email_check

        return self.validate_contact_number(registration.contact_number)

    # ==================================================================
    # Registration
    # ==================================================================

    def register_user(self, registration: UserRegistration) -> int:
        """Validate *registration* and insert one row.

        Session state is untouched; the user must log in afterwards.

        Returns
        -------
        int
            The ``id`` assigned by the store.

        Raises
        ------
        ValidationFailed
            A required field is missing or malformed.
        DuplicateCredential
            The username or email is already registered.
        StorageUnavailable
            The store could not be written.
        """
        check = self.validate_registration(registration)
        if not check.is_valid:
            raise ValidationFailed(check.error_message or "Invalid input.", field=check.field)

        # Stored values must match what was validated.
        registration = registration.model_copy(
            update=_trimmed(registration.model_dump(include=set(_TRIMMED_FIELDS))),
        )
        password_hash = hash_password(
            registration.password, self._config.PASSWORD_HASH_ITERATIONS,
        )
        user_id = self._user_repo.create(registration, password_hash)

        self._logger.info(
            "User registered: %s.",
            registration.username,
            extra={
                "event": "REGISTER",
                "username": registration.username,
                "user_id": user_id,
            },
        )
        return user_id

    # ==================================================================
    # Login
    # ==================================================================

    def login_user(self, username: str, password: str) -> Optional[User]:
        """Authenticate *username* / *password*.

        The username match is exact and case-sensitive.  On success the
        in-memory session is created and the session flag plus user
        snapshot are persisted.  Unknown usernames and wrong passwords
        both return ``None`` after the same amount of hashing work.

        Raises
        ------
        StorageUnavailable
            The store could not be queried.
        """
        if not username or not password:
            self._logger.info(
                "Login rejected: empty credentials.",
                extra={"event": "LOGIN_FAILED"},
            )
            return None
        if not _is_utf8(username) or not _is_utf8(password):
            self._logger.info(
                "Login rejected: unencodable credentials.",
                extra={"event": "LOGIN_FAILED"},
            )
            return None

        credentials = self._user_repo.get_credentials(username)
        if credentials is None:
            dummy_verify(password, self._config.PASSWORD_HASH_ITERATIONS)
            self._logger.info(
                "Login failed.", extra={"event": "LOGIN_FAILED"},
            )
            return None

        user, password_hash = credentials
        if not verify_password(password, password_hash):
            self._logger.info(
                "Login failed.", extra={"event": "LOGIN_FAILED"},
            )
            return None

        self._session.create(user)
        if not self._session_cache.cache_session(user):
            self._logger.warning(
                "Session caching failed for %s; the session will not "
                "survive a restart.",
                user.username,
            )

        self._logger.info(
            "User logged in: %s",
            user.username,
            extra={"event": "LOGIN", "user_id": user.id},
        )
        return user

    # ==================================================================
    # Session queries
    # ==================================================================

    def get_logged_in_user(self) -> Optional[User]:
        """Return the user stored in the persisted session snapshot."""
        cached = self._session_cache.load_cached_session()
        return cached.user if cached is not None else None

    def restore_session(self) -> Optional[User]:
        """Re-establish the previous session at application launch.

        Requires ``isLoggedIn == "true"``, a readable unexpired snapshot,
        and a row that still exists with the same id and username.  Any
        other state clears the persisted session and returns ``None``.

        Raises
        ------
        StorageUnavailable
            The store could not be queried.
        """
        if not self._session_cache.is_logged_in():
            return None

        cached = self._session_cache.load_cached_session()
        if cached is None:
            self._logger.info("Session flag set but no usable snapshot; clearing.")
            self._session_cache.clear_session()
            return None

        current = self._user_repo.get_by_id(cached.user.id)
        if current is None or current.username != cached.user.username:
            self._logger.info(
                "Cached user %s no longer exists; clearing session.",
                cached.user.username,
                extra={"event": "SESSION_INVALIDATED"},
            )
            self._session_cache.clear_session()
            return None

        self._session.create(current)
        self._logger.info(
            "Session restored for %s.",
            current.username,
            extra={"event": "SESSION_RESTORED", "user_id": current.id},
        )
        return current

    # ==================================================================
    # Profile
    # ==================================================================

    def update_user_profile(self, user_id: int, update: ProfileUpdate) -> bool:
        """Overwrite the profile fields of *user_id*.

        ``username`` and ``password`` cannot be changed here.  An unknown
        *user_id* is a no-op and returns ``False``.  Neither the
        in-memory session nor the persisted snapshot is refreshed.
        Email and contact number are stored trimmed.

        Raises
        ------
        ValidationFailed
            A field holds characters that cannot be stored.
        DuplicateCredential
            The new email belongs to another account.
        StorageUnavailable
            The store could not be written.
        """
        changes: dict[str, Optional[str]] = update.model_dump()
        for field, value in changes.items():
            if value is not None and not _is_utf8(value):
                raise ValidationFailed(
                    "Profile contains invalid characters.", field=field,
                )
        update = update.model_copy(update=_trimmed(changes))

        updated = self._user_repo.update_profile(user_id, update)
        if updated:
            self._logger.info(
                "User profile updated: id=%d",
                user_id,
                extra={"event": "PROFILE_UPDATE", "user_id": user_id},
            )
        else:
            self._logger.info("Profile update matched no user: id=%d", user_id)
        return updated

    def update_profile_picture(self, user: User, picture_uri: str) -> Optional[User]:
        """Replace *user*'s profile picture, keeping every other field.

        Returns the re-read record, or ``None`` if the user no longer
        exists.
        """
        self.update_user_profile(
            user.id, ProfileUpdate.from_user(user, profile_picture=picture_uri),
        )
        return self._user_repo.get_by_id(user.id)

    # ==================================================================
    # Deletion
    # ==================================================================

    def delete_user_account(self, user_id: int) -> bool:
        """Permanently delete the account with *user_id*.

        A missing row is a no-op and returns ``False``.  The session
        cache is not cleared; :meth:`restore_session` rejects snapshots
        of deleted users.
        """
        deleted = self._user_repo.delete(user_id)
        if deleted:
            self._logger.info(
                "User account deleted: id=%d",
                user_id,
                extra={"event": "ACCOUNT_DELETE", "user_id": user_id},
            )
        return deleted

    # ==================================================================
    # Logout
    # ==================================================================

    def logout_user(self) -> None:
        """End the session and clear the persisted session flags.

        Always succeeds; storage failures are logged, never raised.
        """
        username: str = "unknown"
        current = self._session.current_user
        if current is not None:
            username = current.username

        self._session.destroy()
        self._session_cache.clear_session()

        self._logger.info(
            "User logged out: %s",
            username,
            extra={"event": "LOGOUT", "username": username},
        )

    # ==================================================================
    # Lookup
    # ==================================================================

    def get_all_users(self) -> list[User]:
        """Return every registered user ordered by ``id``."""
        return self._user_repo.get_all()

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Return the user with exactly *username*, or ``None``."""
        return self._user_repo.get_by_username(username)
