"""Password hashing helpers.

Passwords are stored as a single self-describing string::

    pbkdf2_sha256$<iterations>$<salt_hex>$<hash_hex>

so the iteration count can be raised later without invalidating
existing rows.
"""

from __future__ import annotations

import hashlib
import hmac
import os

__all__ = ["hash_password", "verify_password", "dummy_verify"]

_ALGORITHM: str = "pbkdf2_sha256"
_SALT_BYTES: int = 16

# Used by dummy_verify() so unknown usernames cost the same as wrong passwords.
_DUMMY_SALT: bytes = os.urandom(_SALT_BYTES)


def _derive(password: str, salt: bytes, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations=iterations,
    ).hex()


def hash_password(password: str, iterations: int) -> str:
    """Derive a salted PBKDF2-HMAC-SHA256 hash for storage.

    Parameters
    ----------
    password:
        The plaintext password to hash.
    iterations:
        PBKDF2 iteration count, recorded in the encoded result.

    Returns
    -------
    str
        The encoded ``pbkdf2_sha256$…`` string.
    """
    salt: bytes = os.urandom(_SALT_BYTES)
    return f"{_ALGORITHM}${iterations}${salt.hex()}${_derive(password, salt, iterations)}"


def verify_password(password: str, encoded: str) -> bool:
    """Return ``True`` when *password* matches the *encoded* hash.

    Malformed stored values never match.
    """
    try:
        algorithm, iterations_str, salt_hex, expected = encoded.split("$")
        iterations = int(iterations_str)
        salt = bytes.fromhex(salt_hex)
    except (ValueError, AttributeError):
        return False
    if algorithm != _ALGORITHM:
        return False
    return hmac.compare_digest(_derive(password, salt, iterations), expected)


def dummy_verify(password: str, iterations: int) -> bool:
    """Spend one hash computation and return ``False``."""
    _derive(password, _DUMMY_SALT, iterations)
    return False
