"""Value objects for tenant records.

Immutable, validated domain primitives. All validation occurs at
construction time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Hostname-like routing key: dot-separated labels of lowercase
# alphanumerics and inner hyphens.
_DOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$")


@dataclass(frozen=True, slots=True)
class TenantDomain:
    """Validated tenant routing key (case-insensitive, stored lowercased).

    Attributes:
        value: The normalized domain string.

    Raises:
        ValueError: If the domain is empty, too long or not hostname-like.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if len(normalized) < 2:
            msg = f"Tenant domain too short: '{self.value}' (min 2 chars)"
            raise ValueError(msg)
        if len(normalized) > 253:
            msg = f"Tenant domain too long: {len(normalized)} chars (max 253)"
            raise ValueError(msg)
        if not _DOMAIN_PATTERN.match(normalized):
            msg = (
                f"Invalid tenant domain '{self.value}': use letters, digits, "
                "hyphens and dots"
            )
            raise ValueError(msg)
        object.__setattr__(self, "value", normalized)


@dataclass(frozen=True, slots=True)
class TenantName:
    """Validated tenant display name.

    Attributes:
        value: The validated name string (1-255 chars, unicode OK).

    Raises:
        ValueError: If name is empty, whitespace-only, or exceeds 255 chars.
    """

    value: str

    def __post_init__(self) -> None:
        stripped = self.value.strip()
        if not stripped:
            msg = "Tenant name cannot be empty"
            raise ValueError(msg)
        if len(stripped) > 255:
            msg = f"Tenant name too long: {len(stripped)} chars (max 255)"
            raise ValueError(msg)
        object.__setattr__(self, "value", stripped)
