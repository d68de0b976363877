"""Closed set of principal roles and the role/tenant invariant."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from kinship.foundation.domain.exceptions import ValidationError

if TYPE_CHECKING:
    from uuid import UUID


class Role(StrEnum):
    """Principal roles, highest privilege first.

    Uses StrEnum for native JSON serialization and direct storage in a
    string column.
    """

    PLATFORM_OWNER = "PLATFORM_OWNER"
    TENANT_OWNER = "TENANT_OWNER"
    CO_OWNER = "CO_OWNER"
    RESTRICTED_MEMBER = "RESTRICTED_MEMBER"


# Higher rank may administer lower rank.
ROLE_RANK: dict[Role, int] = {
    Role.PLATFORM_OWNER: 3,
    Role.TENANT_OWNER: 2,
    Role.CO_OWNER: 1,
    Role.RESTRICTED_MEMBER: 0,
}


def ensure_role_tenant_invariant(role: Role | str, tenant_id: UUID | None) -> None:
    """Enforce ``role == PLATFORM_OWNER`` if and only if ``tenant_id is None``.

    Args:
        role: Role being assigned.
        tenant_id: Tenant the principal belongs to, if any.

    Raises:
        ValidationError: If the combination is not allowed.
    """
    if Role(role) is Role.PLATFORM_OWNER:
        if tenant_id is not None:
            raise ValidationError("tenant_id", "Platform owners cannot belong to a tenant")
    elif tenant_id is None:
        raise ValidationError("tenant_id", f"Role {role} requires a tenant")
