"""Tests for the auth FastAPI dependencies."""

from __future__ import annotations

from datetime import date
from typing import Annotated
from uuid import UUID

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from kinship.foundation.application.tenant_scope import TenantScope
from kinship.foundation.domain.exceptions import (
    AgeRestrictedError,
    NoTenantContextError,
    RoleNotPermittedError,
)
from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role
from kinship.infra.auth.dependencies import (
    TargetTenantId,
    get_current_principal,
    get_current_tenant_scope,
    get_target_tenant_id,
    require_action,
)

_TENANT = UUID("aaaaaaaa-0000-0000-0000-000000000001")


def _principal(role: Role, birth_date: date | None = None) -> Principal:
    return Principal(
        principal_id=UUID(int=5),
        email="p@smith.family",
        name="P",
        role=role,
        tenant_id=None if role is Role.PLATFORM_OWNER else _TENANT,
        birth_date=birth_date,
    )


def _call_with(principal: Principal, action: str) -> Principal:
    return require_action(action)(principal)


@pytest.mark.unit
class TestRequireAction:
    """require_action wraps ensure_authorized."""

    def test_granted_returns_principal(self) -> None:
        principal = _principal(Role.CO_OWNER)
        assert _call_with(principal, "chore:create") is principal

    def test_role_denied(self) -> None:
        with pytest.raises(RoleNotPermittedError):
            _call_with(_principal(Role.CO_OWNER), "tenant:create")

    def test_minor_denied_billing(self) -> None:
        with pytest.raises(AgeRestrictedError):
            _call_with(_principal(Role.RESTRICTED_MEMBER, date(2020, 1, 1)), "billing:create")

    def test_in_fastapi_route(self) -> None:
        app = FastAPI()

        @app.get("/billing")
        def billing(
            principal: Annotated[Principal, Depends(require_action("billing:read"))],
        ) -> dict[str, str]:
            return {"email": principal.email}

        app.dependency_overrides[get_current_principal] = lambda: _principal(Role.TENANT_OWNER)
        assert TestClient(app).get("/billing").json() == {"email": "p@smith.family"}


@pytest.mark.unit
class TestTargetTenant:
    """Tenant required for tenant-only operations."""

    def test_member_uses_own_tenant(self) -> None:
        principal = _principal(Role.CO_OWNER)
        assert get_target_tenant_id(principal, TenantScope.for_tenant(_TENANT)) == _TENANT

    def test_platform_owner_with_selected_tenant(self) -> None:
        owner = _principal(Role.PLATFORM_OWNER)
        assert get_target_tenant_id(owner, TenantScope.for_tenant(_TENANT)) == _TENANT

    def test_platform_owner_without_tenant(self) -> None:
        owner = _principal(Role.PLATFORM_OWNER)
        with pytest.raises(NoTenantContextError):
            get_target_tenant_id(owner, TenantScope.unrestricted())

    def test_alias_resolves_in_route(self) -> None:
        app = FastAPI()

        @app.get("/tenant")
        def tenant(tenant_id: TargetTenantId) -> dict[str, str]:
            return {"tenant_id": str(tenant_id)}

        app.dependency_overrides[get_current_principal] = lambda: _principal(Role.CO_OWNER)
        app.dependency_overrides[get_current_tenant_scope] = lambda: TenantScope.for_tenant(
            _TENANT
        )
        response = TestClient(app).get("/tenant")
        assert response.json() == {"tenant_id": str(_TENANT)}
