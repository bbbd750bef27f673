"""
Encrypted Session Cache Service.

Mirrors the authenticated session into the key-value store so that it
survives an application restart:

- ``isLoggedIn``  : ``"true"`` while a user is logged in, absent otherwise.
- ``loggedInUser``: AES-256-GCM encrypted JSON snapshot of the ``User``
  record (never the password), with a ``cached_at`` timestamp.

Security model
--------------
- The encryption key is derived at runtime from machine identity
  (hostname + OS username) via PBKDF2-HMAC-SHA256 with a per-machine
  random salt.  The key is **never** persisted.
- AES-GCM provides confidentiality and integrity; a tampered or
  foreign snapshot fails to decrypt and is treated as absent.
- Snapshots expire after ``max_age_days``.
- Logout removes both keys.

Stored value layout for ``loggedInUser``::

    {"payload": "<hex>", "nonce": "<hex>", "tag": "<hex>"}
"""

from __future__ import annotations

import getpass
import json
import os
import socket
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from pydantic import ValidationError

from pocketauth.logger import StructuredLogger
from pocketauth.models.auth_models import CachedSession
from pocketauth.models.user import User
from pocketauth.services.key_value_store import (
    KEY_IS_LOGGED_IN,
    KEY_LOGGED_IN_USER,
    KeyValueStore,
)


class SessionCacheService:
    """Manages the persisted session flag and encrypted user snapshot.

    Parameters
    ----------
    store:
        Key-value store backing the session flags.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    salt_path:
        File holding the per-machine 32-byte key-derivation salt.
        Created on first use with owner-only permissions.
    max_age_days:
        Maximum number of days a cached snapshot remains valid.
    key_iterations:
        PBKDF2 iteration count for the snapshot encryption key.
    """

    _KEY_LENGTH: int = 32  # 256 bits
    _SALT_LENGTH: int = 32

    def __init__(
        self,
        store: KeyValueStore,
        logger: StructuredLogger,
        salt_path: Path,
        max_age_days: int = 7,
        key_iterations: int = 600_000,
    ) -> None:
        self._store: KeyValueStore = store
        self._logger: StructuredLogger = logger
        self._salt_path: Path = salt_path
        self._max_age_days: int = max_age_days
        self._key_iterations: int = key_iterations
        self._key: Optional[bytes] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def cache_session(self, user: User) -> bool:
        """Set ``isLoggedIn`` and persist an encrypted snapshot of *user*.

        Returns
        -------
        bool
            ``True`` if both keys were written.  ``False`` if encryption
            or the store write failed; the error is logged, not raised,
            because caching is non-critical to the login flow.
        """
        snapshot = CachedSession(
            user=user,
            cached_at=datetime.now(tz=timezone.utc).isoformat(),
        )
        plaintext: bytes = snapshot.model_dump_json().encode("utf-8")

        try:
            key: bytes = self._derive_key()
            cipher = AES.new(key, AES.MODE_GCM)
            ciphertext, tag = cipher.encrypt_and_digest(plaintext)
            nonce: bytes = cipher.nonce
        except (OSError, ValueError, KeyError) as exc:
            self._logger.warning("Failed to encrypt session snapshot: %s", exc)
            return False

        sealed: str = json.dumps({
            "payload": ciphertext.hex(),
            "nonce": nonce.hex(),
            "tag": tag.hex(),
        })

        if not self._store.set(KEY_LOGGED_IN_USER, sealed):
            return False
        if not self._store.set(KEY_IS_LOGGED_IN, "true"):
            return False

        self._logger.info("Session cached for user %s.", user.username)
        return True

    def is_logged_in(self) -> bool:
        """``True`` when the persisted ``isLoggedIn`` flag reads ``"true"``."""
        return self._store.get(KEY_IS_LOGGED_IN) == "true"

    def load_cached_session(self) -> Optional[CachedSession]:
        """Load and decrypt the ``loggedInUser`` snapshot.

        Returns
        -------
        CachedSession or None
            ``None`` is returned when:

            - No snapshot exists.
            - Decryption fails (corrupted data or machine identity changed).
            - The snapshot has exceeded ``max_age_days``.
        """
        raw: Optional[str] = self._store.get(KEY_LOGGED_IN_USER)
        if raw is None:
            self._logger.debug("No cached session found.")
            return None

        # --- Unpack ---
        try:
            sealed: dict[str, str] = json.loads(raw)
            ciphertext = bytes.fromhex(sealed["payload"])
            nonce = bytes.fromhex(sealed["nonce"])
            tag = bytes.fromhex(sealed["tag"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            self._logger.warning("Cached session envelope is malformed: %s", exc)
            return None

        # --- Decrypt ---
        try:
            key: bytes = self._derive_key()
            cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
            plaintext: bytes = cipher.decrypt_and_verify(ciphertext, tag)
        except (ValueError, KeyError, OSError) as exc:
            self._logger.warning(
                "Decryption of cached session failed (corrupted data or "
                "machine identity changed): %s",
                exc,
            )
            return None

        # --- Deserialize ---
        try:
            session = CachedSession.model_validate_json(plaintext)
        except ValidationError as exc:
            self._logger.warning("Cached session payload is malformed: %s", exc)
            return None

        # --- Expiry check ---
        try:
            cached_at: datetime = datetime.fromisoformat(session.cached_at)
        except ValueError as exc:
            self._logger.warning(
                "Could not parse cached_at timestamp '%s': %s",
                session.cached_at,
                exc,
            )
            return None

        if datetime.now(tz=timezone.utc) > cached_at + timedelta(days=self._max_age_days):
            self._logger.info(
                "Cached session for user %s has expired (cached at %s, "
                "max age %d days).",
                session.user.username,
                session.cached_at,
                self._max_age_days,
            )
            return None

        return session

    def clear_session(self) -> None:
        """Remove ``isLoggedIn`` and ``loggedInUser``.

        Never raises; failures are logged so logout always completes.
        """
        flag_removed = self._store.remove(KEY_IS_LOGGED_IN)
        snapshot_removed = self._store.remove(KEY_LOGGED_IN_USER)
        if flag_removed and snapshot_removed:
            self._logger.info("Cached session cleared.")
        else:
            self._logger.error(
                "Cached session only partially cleared "
                "(isLoggedIn removed=%s, loggedInUser removed=%s).",
                flag_removed,
                snapshot_removed,
            )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _derive_key(self) -> bytes:
        """Derive the 256-bit AES key from machine identity.

        Deterministic for a given (hostname, OS username, salt) triple,
        so a session store copied to another machine cannot be read.
        The derived key is memoised for the lifetime of the service.

        Raises
        ------
        OSError
            If the salt file cannot be created or read.
        """
        if self._key is None:
            identity: str = f"{socket.gethostname()}:{getpass.getuser()}"
            self._key = PBKDF2(
                password=identity,
                salt=self._get_or_create_salt(),
                dkLen=self._KEY_LENGTH,
                count=self._key_iterations,
                hmac_hash_module=SHA256,
            )
        return self._key

    def _get_or_create_salt(self) -> bytes:
        """Return the per-machine random salt, creating it on first run.

        Raises
        ------
        OSError
            If the salt file cannot be read or written.
        """
        if self._salt_path.exists():
            data: bytes = self._salt_path.read_bytes()
            if len(data) == self._SALT_LENGTH:
                return data
            self._logger.warning(
                "Salt file has unexpected length (%d); regenerating.",
                len(data),
            )
        salt: bytes = os.urandom(self._SALT_LENGTH)
        self._salt_path.parent.mkdir(parents=True, exist_ok=True)
        self._salt_path.write_bytes(salt)
        try:
            self._salt_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600
        except OSError as exc:
            self._logger.warning(
                "Could not restrict permissions on '%s': %s", self._salt_path, exc,
            )

        self._logger.info("Per-machine session salt created at %s.", self._salt_path)
        return salt
