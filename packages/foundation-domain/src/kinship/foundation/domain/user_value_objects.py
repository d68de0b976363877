"""Value objects for principal records.

Immutable, validated domain primitives. All validation occurs at construction.
Email and username are normalized to lowercase so that lookups and
uniqueness checks are case-insensitive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_USERNAME_PATTERN = re.compile(r"^[a-z0-9._-]{3,50}$")


class ExternalProvider(StrEnum):
    """Supported external identity providers."""

    GOOGLE = "google"
    MICROSOFT = "microsoft"
    APPLE = "apple"


@dataclass(frozen=True, slots=True)
class Email:
    """Validated, lowercased email address.

    Attributes:
        value: The normalized email string.

    Raises:
        ValueError: If email is empty, has an invalid format or exceeds 255 chars.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if not normalized:
            msg = "Email cannot be empty"
            raise ValueError(msg)
        if len(normalized) > 255:
            msg = f"Email too long: {len(normalized)} chars (max 255)"
            raise ValueError(msg)
        if not _EMAIL_PATTERN.match(normalized):
            msg = f"Invalid email format: '{self.value}'"
            raise ValueError(msg)
        object.__setattr__(self, "value", normalized)


@dataclass(frozen=True, slots=True)
class Username:
    """Validated, lowercased username (unique within a tenant).

    Format: 3-50 chars of lowercase letters, digits, dots, underscores
    and hyphens.

    Raises:
        ValueError: If the username does not match the format.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if not _USERNAME_PATTERN.match(normalized):
            msg = (
                f"Invalid username '{self.value}': 3-50 letters, digits, "
                "dots, underscores or hyphens"
            )
            raise ValueError(msg)
        object.__setattr__(self, "value", normalized)


@dataclass(frozen=True, slots=True)
class DisplayName:
    """Validated display name value object.

    Format: Non-empty string after whitespace stripping, max 255 characters.
    Leading and trailing whitespace is automatically removed.

    Raises:
        ValueError: If display name is empty/whitespace-only or exceeds 255 chars.
    """

    value: str

    def __post_init__(self) -> None:
        stripped = self.value.strip()
        if not stripped:
            msg = "Display name cannot be empty"
            raise ValueError(msg)
        if len(stripped) > 255:
            msg = f"Display name too long: {len(stripped)} chars (max 255)"
            raise ValueError(msg)
        object.__setattr__(self, "value", stripped)


@dataclass(frozen=True, slots=True)
class ProviderSubject:
    """Subject identifier issued by an external identity provider.

    No format constraints beyond non-empty and at most 255 characters, to
    support every provider.

    Raises:
        ValueError: If the subject is empty or exceeds 255 characters.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            msg = "Provider subject cannot be empty"
            raise ValueError(msg)
        if len(self.value) > 255:
            msg = f"Provider subject too long: {len(self.value)} chars (max 255)"
            raise ValueError(msg)
