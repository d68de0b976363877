"""Tenant scope value object and the rules for deriving it from a principal.

A :class:`TenantScope` is what the persistence layer filters by. It is
either pinned to exactly one tenant or explicitly cross-tenant; there is no
implicit "no filter" state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from kinship.foundation.domain.exceptions import NoTenantContextError

if TYPE_CHECKING:
    from uuid import UUID

    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TenantScope:
    """Data-access scope for the current unit of work.

    Attributes:
        tenant_id: Tenant every tenant-owned row must belong to. None only
            when ``cross_tenant`` is set.
        cross_tenant: True when no tenant filter applies (platform owner
            without a target tenant, or elevated system work).
    """

    tenant_id: UUID | None
    cross_tenant: bool = False

    def __post_init__(self) -> None:
        if self.cross_tenant == (self.tenant_id is not None):
            msg = "TenantScope must be pinned to a tenant or explicitly cross-tenant"
            raise ValueError(msg)

    @classmethod
    def for_tenant(cls, tenant_id: UUID) -> TenantScope:
        """Scope pinned to one tenant."""
        return cls(tenant_id=tenant_id)

    @classmethod
    def unrestricted(cls) -> TenantScope:
        """Cross-tenant scope with no filter."""
        return cls(tenant_id=None, cross_tenant=True)


def resolve_tenant_scope(
    principal: Principal,
    target_tenant_id: UUID | None = None,
) -> TenantScope:
    """Derive the data-access scope for a resolved principal.

    Non-platform principals are always pinned to their own tenant; a target
    tenant supplied by the caller is ignored for them. Platform owners are
    cross-tenant unless they name a target tenant, in which case they are
    pinned to it.

    Args:
        principal: The authenticated principal.
        target_tenant_id: Tenant selected by a platform owner, already
            validated by the caller.

    Returns:
        The scope to bind for the request.
    """
    if principal.is_platform_owner:
        if target_tenant_id is None:
            return TenantScope.unrestricted()
        return TenantScope.for_tenant(target_tenant_id)

    if target_tenant_id is not None and target_tenant_id != principal.tenant_id:
        logger.info(
            "tenant_scope_target_ignored",
            extra={
                "principal_id": str(principal.principal_id),
                "requested_tenant_id": str(target_tenant_id),
            },
        )
    # Non-platform principals always carry a tenant (role/tenant invariant).
    return TenantScope.for_tenant(principal.tenant_id)  # type: ignore[arg-type]


def require_tenant_context(
    principal: Principal,
    scope: TenantScope | None = None,
) -> UUID:
    """Return the tenant an operation must act on, or fail.

    For operations that have no platform-wide meaning (e.g. creating a
    chore). Platform owners must have selected a target tenant.

    Args:
        principal: The authenticated principal.
        scope: Scope of the current request. Defaults to the bound scope.

    Returns:
        The tenant id to act on.

    Raises:
        NoTenantContextError: If a platform owner has no target tenant.
    """
    if not principal.is_platform_owner:
        return principal.tenant_id  # type: ignore[return-value]

    if scope is None:
        from kinship.foundation.application.context import get_optional_tenant_scope

        scope = get_optional_tenant_scope()
    if scope is None or scope.tenant_id is None:
        raise NoTenantContextError(principal_id=str(principal.principal_id))
    return scope.tenant_id
