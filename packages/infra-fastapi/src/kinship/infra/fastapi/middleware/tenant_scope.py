"""Middleware that binds the data-access tenant scope for each request.

Runs inside the session auth middleware, so the principal is already in
the request context. The scope it binds is what the persistence layer's
tenant-scoping enforcer filters every query and flush by.

Scope rules:
- No principal (excluded paths): nothing is bound. Handlers on those
  paths open an elevated scope for the lookups they need.
- Non-platform principal: pinned to its own tenant. ``X-Tenant-ID`` is
  ignored.
- Platform owner without ``X-Tenant-ID``: cross-tenant.
- Platform owner with ``X-Tenant-ID``: the value must be a UUID (else 400)
  naming an existing tenant (else 404); the scope is pinned to it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse

from kinship.foundation.application.context import (
    clear_tenant_scope,
    elevated_scope,
    get_optional_principal,
    set_tenant_scope,
)
from kinship.foundation.application.contributions import (
    MIDDLEWARE_PRIORITY_TENANT_SCOPE,
    MiddlewareContribution,
)
from kinship.foundation.application.tenant_scope import resolve_tenant_scope
from kinship.infra.fastapi.middleware.request_id import extract_header

if TYPE_CHECKING:
    from collections.abc import Callable

    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)

TENANT_ID_HEADER = "X-Tenant-ID"

_PROBLEM_MEDIA_TYPE = "application/problem+json"

_TITLES = {400: "Bad Request", 404: "Resource Not Found", 503: "Service Unavailable"}


class _TargetRejected(Exception):
    def __init__(self, status: int, error_code: str, detail: str) -> None:
        super().__init__(detail)
        self.status = status
        self.error_code = error_code
        self.detail = detail


def _parse_tenant_id(raw: str) -> UUID | None:
    try:
        return UUID(raw)
    except ValueError:
        return None


class TenantScopeMiddleware:
    """Pure ASGI middleware binding a TenantScope around the downstream app.

    The platform owner's target tenant is looked up through
    ``app.state.principal_directory`` under an elevated scope, in the
    threadpool. The bound scope is always reset when the request ends.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        principal = get_optional_principal()
        if principal is None:
            await self.app(scope, receive, send)
            return

        raw_target = extract_header(scope.get("headers", []), b"x-tenant-id").strip()
        try:
            target = await self._target_tenant(scope, principal, raw_target)
        except _TargetRejected as exc:
            logger.info(
                "tenant_target_rejected",
                extra={
                    "principal_id": str(principal.principal_id),
                    "error_code": exc.error_code,
                },
            )
            response = JSONResponse(
                status_code=exc.status,
                content={
                    "type": f"/errors/{exc.error_code.lower().replace('_', '-')}",
                    "title": _TITLES[exc.status],
                    "status": exc.status,
                    "detail": exc.detail,
                    "error_code": exc.error_code,
                    "instance": scope.get("path", ""),
                },
                media_type=_PROBLEM_MEDIA_TYPE,
            )
            await response(scope, receive, send)
            return

        tenant_scope = resolve_tenant_scope(principal, target)
        token = set_tenant_scope(tenant_scope)
        structlog.contextvars.bind_contextvars(
            tenant_id=str(tenant_scope.tenant_id) if tenant_scope.tenant_id else None,
        )
        try:
            await self.app(scope, receive, send)
        finally:
            clear_tenant_scope(token)
            structlog.contextvars.unbind_contextvars("tenant_id")

    async def _target_tenant(
        self,
        scope: dict[str, Any],
        principal: Principal,
        raw_target: str,
    ) -> UUID | None:
        if not raw_target:
            return None

        target = _parse_tenant_id(raw_target)
        if not principal.is_platform_owner:
            # Ignored for tenant-bound principals; resolve_tenant_scope logs it.
            return target

        if target is None:
            raise _TargetRejected(400, "INVALID_TENANT_ID", f"{TENANT_ID_HEADER} must be a UUID")

        directory = getattr(scope["app"].state, "principal_directory", None)
        if directory is None:
            raise _TargetRejected(503, "SERVICE_UNAVAILABLE", "Tenant directory not configured")

        with elevated_scope("tenant_selection"):
            tenant = await run_in_threadpool(directory.load_tenant, target)
        if tenant is None:
            raise _TargetRejected(404, "RESOURCE_NOT_FOUND", f"Tenant not found: {target}")
        return target


contribution = MiddlewareContribution(
    middleware_class=TenantScopeMiddleware,
    priority=MIDDLEWARE_PRIORITY_TENANT_SCOPE,
)
