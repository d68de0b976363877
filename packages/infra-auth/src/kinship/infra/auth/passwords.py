"""Bcrypt password hashing adapter for PasswordHasherPort."""

from __future__ import annotations

import bcrypt

from kinship.foundation.domain.exceptions import ValidationError

_BCRYPT_ROUNDS = 12
# bcrypt only reads the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class BcryptPasswordHasher:
    """Hashes and verifies passwords with bcrypt.

    Example:
        >>> hasher = BcryptPasswordHasher(rounds=4)
        >>> hasher.verify("correct horse", hasher.hash("correct horse"))
        True
    """

    def __init__(self, rounds: int = _BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a plaintext password.

        Raises:
            ValidationError: If the password is longer than bcrypt accepts.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError("password", f"must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check of ``password`` against a stored hash.

        Returns False for a mismatch, an over-long password or an unreadable hash.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            return False
