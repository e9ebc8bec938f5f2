"""
Credential Verification.

Salted PBKDF2-HMAC-SHA256 password hashing behind one small interface, so
the login path never compares stored plaintext.

Rows written by older versions of the board only carry a plaintext
``password`` column.  Such a row is verified once with a constant-time
comparison and flagged by :meth:`CredentialVerifier.needs_migration`; the
caller then re-saves it with a hash.  There is no default password.
"""

from __future__ import annotations

import hashlib
import hmac
import os
import secrets

from carwash.models.user import User

__all__ = ["CredentialVerifier", "generate_temporary_password"]


def generate_temporary_password() -> str:
    """Random one-time password handed to a user by an administrator."""
    return secrets.token_urlsafe(9)


class CredentialVerifier:
    """Hash and verify user passwords.

    Parameters
    ----------
    iterations:
        PBKDF2 iteration count.  The default follows the OWASP 2023
        recommendation for PBKDF2-HMAC-SHA256.
    """

    DEFAULT_ITERATIONS: int = 600_000

    def __init__(self, iterations: int = DEFAULT_ITERATIONS) -> None:
        self._iterations = iterations

    def hash_password(self, password: str) -> tuple[str, str]:
        """Return a ``(hex_hash, hex_salt)`` pair with a fresh 32-byte salt."""
        salt: bytes = os.urandom(32)
        return self._derive(password, salt), salt.hex()

    def verify(self, user: User, password: str) -> bool:
        """``True`` when *password* matches the credentials stored on *user*."""
        if not password:
            return False

        if user.password_hash and user.password_salt:
            computed = self._derive(password, bytes.fromhex(user.password_salt))
            return hmac.compare_digest(computed, user.password_hash)

        if user.password:
            return hmac.compare_digest(
                password.encode("utf-8"), user.password.encode("utf-8"),
            )
        return False

    @staticmethod
    def needs_migration(user: User) -> bool:
        """``True`` for legacy rows that still hold a plaintext password."""
        return not (user.password_hash and user.password_salt)

    def _derive(self, password: str, salt: bytes) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt,
            iterations=self._iterations,
        ).hex()
