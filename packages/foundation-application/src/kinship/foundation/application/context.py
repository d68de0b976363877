"""Request-scoped context for the authenticated principal and tenant scope.

Provides ContextVar-based propagation of the resolved principal and the
data-access tenant scope across the call stack without explicit parameter
passing. Starlette copies the context into worker threads, so synchronous
handlers and repositories see the same values as the middleware that set
them.

Principal context: set by the session auth middleware after the
authentication resolver succeeds.

Tenant scope context: set by the tenant scope middleware from the principal,
and read by the persistence layer's tenant-scoping enforcer on every query
and flush.

Usage:
    from kinship.foundation.application.context import get_current_principal

    principal = get_current_principal()  # Raises if no principal context

    from kinship.foundation.application.context import elevated_scope

    with elevated_scope("login"):
        ...  # cross-tenant lookups before a principal exists
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

from kinship.foundation.application.tenant_scope import TenantScope

if TYPE_CHECKING:
    from collections.abc import Iterator
    from contextvars import Token

    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)


class NoRequestContextError(RuntimeError):
    """Raised when request context is accessed outside of a request."""

    def __init__(self, what: str = "request context") -> None:
        super().__init__(
            f"No {what} available. "
            "Ensure this code is called within an HTTP request with context middleware, "
            "or bind a scope explicitly."
        )


# ---------------------------------------------------------------------------
# Principal context
# ---------------------------------------------------------------------------

_principal_context: ContextVar[Principal | None] = ContextVar("principal_context", default=None)


def set_principal_context(principal: Principal) -> Token[Principal | None]:
    """Set the authenticated principal for the current request.

    Called by the auth middleware after successful resolution.
    Returns a token for cleanup.

    Args:
        principal: Principal built from freshly loaded storage records.

    Returns:
        Token for resetting the context.
    """
    return _principal_context.set(principal)


def clear_principal_context(token: Token[Principal | None]) -> None:
    """Reset the principal context using the provided token.

    Called in middleware finally block after request completes.

    Args:
        token: Token from set_principal_context.
    """
    _principal_context.reset(token)


def get_current_principal() -> Principal:
    """Get the authenticated principal from request context.

    Returns:
        The authenticated Principal for the current request.

    Raises:
        NoRequestContextError: If called outside authenticated request.
    """
    principal = _principal_context.get()
    if principal is None:
        raise NoRequestContextError("principal context")
    return principal


def get_optional_principal() -> Principal | None:
    """Get the authenticated principal if available, or None.

    Unlike get_current_principal(), this does not raise on missing context.
    Useful for endpoints that support both authenticated and unauthenticated
    access.

    Returns:
        The authenticated Principal, or None if not in authenticated context.
    """
    return _principal_context.get()


# ---------------------------------------------------------------------------
# Tenant scope context
# ---------------------------------------------------------------------------

_tenant_scope: ContextVar[TenantScope | None] = ContextVar("tenant_scope", default=None)


def set_tenant_scope(scope: TenantScope) -> Token[TenantScope | None]:
    """Bind the data-access scope for the current request.

    Args:
        scope: Scope derived from the authenticated principal.

    Returns:
        Token for resetting the scope.
    """
    return _tenant_scope.set(scope)


def clear_tenant_scope(token: Token[TenantScope | None]) -> None:
    """Reset the tenant scope using the provided token."""
    _tenant_scope.reset(token)


def get_tenant_scope() -> TenantScope:
    """Get the bound tenant scope.

    Raises:
        NoRequestContextError: If no scope is bound. The persistence layer
            lets this propagate so unscoped data access fails closed.
    """
    scope = _tenant_scope.get()
    if scope is None:
        raise NoRequestContextError("tenant scope")
    return scope


def get_optional_tenant_scope() -> TenantScope | None:
    """Get the bound tenant scope, or None."""
    return _tenant_scope.get()


@contextmanager
def scoped_to(scope: TenantScope) -> Iterator[TenantScope]:
    """Bind ``scope`` for the duration of the block.

    Used by background work and tests that run outside the HTTP middleware.
    """
    token = _tenant_scope.set(scope)
    try:
        yield scope
    finally:
        _tenant_scope.reset(token)


@contextmanager
def elevated_scope(reason: str) -> Iterator[TenantScope]:
    """Run the block with cross-tenant visibility.

    Reserved for system work that happens before a principal exists or
    that is tenant-agnostic by nature: credential resolution, login,
    registration, global uniqueness checks. Each use is logged with its
    reason.

    Args:
        reason: Short snake_case label for the log line.
    """
    logger.debug("tenant_scope_elevated", extra={"reason": reason})
    with scoped_to(TenantScope.unrestricted()) as scope:
        yield scope
