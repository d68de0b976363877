"""Principal value object representing an authenticated identity.

Pure domain object with no external dependencies. Immutable (frozen dataclass).
Built by the authentication resolver from freshly loaded storage records,
never from the claims embedded in a session token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kinship.foundation.domain.roles import Role, ensure_role_tenant_invariant

if TYPE_CHECKING:
    from datetime import date
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated person performing a request.

    Immutable for thread safety and to prevent modification after
    resolution.

    Attributes:
        principal_id: Stable identifier of the principal record.
        email: Login email (lowercased).
        name: Display name.
        role: One of the four closed roles.
        tenant_id: Owning tenant. None only for platform owners.
        birth_date: Date of birth, used by the billing age gate. None if unknown.
        via_bypass: True when resolved from the operational bypass credential.
    """

    principal_id: UUID
    email: str
    name: str
    role: Role
    tenant_id: UUID | None = None
    birth_date: date | None = None
    via_bypass: bool = False

    def __post_init__(self) -> None:
        ensure_role_tenant_invariant(self.role, self.tenant_id)

    @property
    def is_platform_owner(self) -> bool:
        """Whether this principal holds the cross-tenant role."""
        return self.role == Role.PLATFORM_OWNER
