"""
User Repository.

Handles all access to the ``users`` table in the local SQLite store.
Every public method is a single statement and its own transaction.
Driver errors are translated into ``DuplicateCredential`` or
``StorageUnavailable`` by :class:`BaseRepository`.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from pocketauth.database import DatabaseManager
from pocketauth.logger import StructuredLogger
from pocketauth.models.user import ProfileUpdate, User, UserRegistration
from pocketauth.repositories.base_repository import BaseRepository

# Every column except the password hash, in table order.
_PUBLIC_COLUMNS: str = (
    "id, username, firstName, lastName, email, contactNumber, address, profilePicture"
)


class UserRepository(BaseRepository):
    """Data access layer for User entities.

    Rows are hard-deleted; ``id`` values come from ``AUTOINCREMENT`` and
    are never reused.
    """

    TABLE = "users"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, registration: UserRegistration, password_hash: str) -> int:
        """Insert a new user row and return its assigned ``id``.

        Args:
            registration: Validated registration fields.  Its plaintext
                ``password`` is ignored; *password_hash* is stored instead.
            password_hash: Encoded hash from :func:`hash_password`.

        Raises:
            DuplicateCredential: ``username`` or ``email`` already exists.
            StorageUnavailable: Any other SQLite failure.
        """
        with self._db.write_lock:
            try:
                cursor = self.sqlite.execute(
                    f"""
                    INSERT INTO {self.TABLE}
                        (username, password, firstName, lastName, email,
                         contactNumber, address, profilePicture)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        registration.username,
                        password_hash,
                        registration.first_name,
                        registration.last_name,
                        registration.email,
                        registration.contact_number,
                        registration.address,
                        registration.profile_picture,
                    ),
                )
                self._commit()
            except sqlite3.Error as exc:
                self._rollback()
                raise self._translate_error(exc, "create (users)") from exc

        user_id = int(cursor.lastrowid)
        self._logger.info("User row inserted: id=%d", user_id)
        return user_id

    def update_profile(self, user_id: int, update: ProfileUpdate) -> bool:
        """Overwrite the six profile columns of the row with *user_id*.

        ``username`` and ``password`` are never touched.

        Returns:
            ``True`` if a row was updated, ``False`` if *user_id* matched
            nothing (a no-op, not an error).

        Raises:
            DuplicateCredential: The new ``email`` belongs to another user.
            StorageUnavailable: Any other SQLite failure.
        """
        with self._db.write_lock:
            try:
                cursor = self.sqlite.execute(
                    f"""
                    UPDATE {self.TABLE}
                    SET firstName = ?, lastName = ?, email = ?,
                        contactNumber = ?, address = ?, profilePicture = ?
                    WHERE id = ?
                    """,
                    (
                        update.first_name,
                        update.last_name,
                        update.email,
                        update.contact_number,
                        update.address,
                        update.profile_picture,
                        user_id,
                    ),
                )
                self._commit()
            except sqlite3.Error as exc:
                self._rollback()
                raise self._translate_error(exc, "update_profile (users)") from exc

        return cursor.rowcount > 0

    def delete(self, user_id: int) -> bool:
        """Permanently remove the row with *user_id*.

        Returns ``False`` when no such row exists.
        """
        with self._db.write_lock:
            try:
                cursor = self.sqlite.execute(
                    f"DELETE FROM {self.TABLE} WHERE id = ?", (user_id,)
                )
                self._commit()
            except sqlite3.Error as exc:
                self._rollback()
                raise self._translate_error(exc, "delete (users)") from exc

        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Fetch a user by primary key."""
        row = self._fetch_one(
            f"SELECT {_PUBLIC_COLUMNS} FROM {self.TABLE} WHERE id = ?",
            (user_id,),
            "get_by_id (users)",
        )
        return User.model_validate(dict(row)) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        """Fetch a user by exact, case-sensitive username."""
        row = self._fetch_one(
            f"SELECT {_PUBLIC_COLUMNS} FROM {self.TABLE} WHERE username = ?",
            (username,),
            "get_by_username (users)",
        )
        return User.model_validate(dict(row)) if row else None

    def get_credentials(self, username: str) -> Optional[tuple[User, str]]:
        """Return ``(user, password_hash)`` for *username*, or ``None``.

        The only read that exposes the stored hash; used by login.
        """
        row = self._fetch_one(
            f"SELECT {_PUBLIC_COLUMNS}, password FROM {self.TABLE} WHERE username = ?",
            (username,),
            "get_credentials (users)",
        )
        if row is None:
            return None
        data = dict(row)
        password_hash: str = data.pop("password")
        return User.model_validate(data), password_hash

    def get_all(self) -> list[User]:
        """Fetch every user ordered by ``id``. Excludes the password hash."""
        try:
            rows = self.sqlite.execute(
                f"SELECT {_PUBLIC_COLUMNS} FROM {self.TABLE} ORDER BY id"
            ).fetchall()
        except sqlite3.Error as exc:
            raise self._translate_error(exc, "get_all (users)") from exc
        return [User.model_validate(dict(row)) for row in rows]

    def count(self) -> int:
        """Return the number of rows in the table."""
        row = self._fetch_one(
            f"SELECT COUNT(*) AS cnt FROM {self.TABLE}", (), "count (users)",
        )
        return int(row["cnt"]) if row else 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fetch_one(
        self,
        sql: str,
        params: tuple[object, ...],
        operation_name: str,
    ) -> Optional[sqlite3.Row]:
        try:
            return self.sqlite.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise self._translate_error(exc, operation_name) from exc
