"""Port interface for password hashing."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PasswordHasherPort(Protocol):
    """Port for one-way password hashing and verification."""

    def hash(self, password: str) -> str:
        """Hash a plaintext password for storage."""
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a plaintext password against a stored hash.

        Returns:
            True when the password matches. False for a mismatch or an
            unreadable hash.
        """
        ...
