"""FastAPI dependency functions for authentication and authorization.

Usage:
    from kinship.infra.auth.dependencies import CurrentPrincipal, require_action

    @router.post("/chores")
    def create_chore(
        principal: Annotated[Principal, Depends(require_action(Action.CHORE_CREATE))],
        ...
    ):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated
from uuid import UUID

from fastapi import Depends

from kinship.foundation.application.authorization import ensure_authorized
from kinship.foundation.application.context import (
    get_current_principal as _get_principal_from_context,
)
from kinship.foundation.application.context import get_tenant_scope
from kinship.foundation.application.tenant_scope import TenantScope, require_tenant_context
from kinship.foundation.domain.principal import Principal

if TYPE_CHECKING:
    from collections.abc import Callable


def get_current_principal() -> Principal:
    """FastAPI dependency that returns the authenticated principal.

    Reads from the principal ContextVar set by SessionAuthMiddleware.

    Raises:
        NoRequestContextError: If called outside authenticated request.
    """
    return _get_principal_from_context()


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_current_tenant_scope() -> TenantScope:
    """FastAPI dependency that returns the bound data-access scope."""
    return get_tenant_scope()


CurrentTenantScope = Annotated[TenantScope, Depends(get_current_tenant_scope)]


def get_target_tenant_id(
    principal: CurrentPrincipal,
    scope: CurrentTenantScope,
) -> UUID:
    """Tenant a tenant-only operation acts on.

    Raises:
        NoTenantContextError: Platform owner without a selected tenant.
    """
    return require_tenant_context(principal, scope)


TargetTenantId = Annotated[UUID, Depends(get_target_tenant_id)]


def require_action(action: str) -> Callable[..., Principal]:
    """Factory returning a dependency that authorizes ``action``.

    The dependency returns the principal so handlers can use it directly.

    Args:
        action: Capability table key, e.g. ``"billing:create"``.

    Returns:
        FastAPI dependency raising an AuthorizationError subclass on denial.

    Usage:
        @router.post("/billing/payments")
        def start_payment(
            principal: Annotated[Principal, Depends(require_action("billing:create"))],
        ):
            ...
    """

    def _check_action(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        ensure_authorized(principal, action)
        return principal

    return _check_action
