"""Unit tests for kinship.foundation.application.context."""

from __future__ import annotations

import logging
from uuid import UUID

import pytest

from kinship.foundation.application.context import (
    NoRequestContextError,
    clear_principal_context,
    clear_tenant_scope,
    elevated_scope,
    get_current_principal,
    get_optional_principal,
    get_optional_tenant_scope,
    get_tenant_scope,
    scoped_to,
    set_principal_context,
    set_tenant_scope,
)
from kinship.foundation.application.tenant_scope import TenantScope
from kinship.foundation.domain.principal import Principal

TENANT_A = UUID("00000000-0000-0000-0000-00000000000a")


class TestPrincipalContext:
    @pytest.mark.unit
    def test_get_raises_when_unset(self) -> None:
        with pytest.raises(NoRequestContextError, match="principal context"):
            get_current_principal()

    @pytest.mark.unit
    def test_optional_returns_none_when_unset(self) -> None:
        assert get_optional_principal() is None

    @pytest.mark.unit
    def test_set_get_clear_lifecycle(self, tenant_owner: Principal) -> None:
        token = set_principal_context(tenant_owner)
        try:
            assert get_current_principal() is tenant_owner
        finally:
            clear_principal_context(token)
        assert get_optional_principal() is None


class TestTenantScopeContext:
    @pytest.mark.unit
    def test_get_raises_when_unset(self) -> None:
        with pytest.raises(NoRequestContextError, match="tenant scope"):
            get_tenant_scope()

    @pytest.mark.unit
    def test_set_and_clear(self) -> None:
        token = set_tenant_scope(TenantScope.for_tenant(TENANT_A))
        try:
            assert get_tenant_scope().tenant_id == TENANT_A
        finally:
            clear_tenant_scope(token)
        assert get_optional_tenant_scope() is None

    @pytest.mark.unit
    def test_scoped_to_restores_previous(self) -> None:
        with scoped_to(TenantScope.for_tenant(TENANT_A)):
            with scoped_to(TenantScope.unrestricted()) as inner:
                assert get_tenant_scope() is inner
            assert get_tenant_scope().tenant_id == TENANT_A
        assert get_optional_tenant_scope() is None

    @pytest.mark.unit
    def test_scoped_to_resets_on_error(self) -> None:
        with pytest.raises(RuntimeError), scoped_to(TenantScope.for_tenant(TENANT_A)):
            raise RuntimeError("boom")
        assert get_optional_tenant_scope() is None

    @pytest.mark.unit
    def test_elevated_scope_is_cross_tenant_and_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with (
            caplog.at_level(logging.DEBUG, logger="kinship.foundation.application.context"),
            elevated_scope("login") as scope,
        ):
            assert scope.cross_tenant is True
            assert get_tenant_scope() is scope
        assert "tenant_scope_elevated" in caplog.text
        assert get_optional_tenant_scope() is None
