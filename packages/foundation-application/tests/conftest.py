"""Shared fixtures for foundation-application tests."""

from __future__ import annotations

from datetime import date
from uuid import UUID

import pytest

from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role

_TENANT = UUID("00000000-0000-0000-0000-00000000000a")


def _make_principal(
    role: Role,
    *,
    tenant_id: UUID | None = _TENANT,
    birth_date: date | None = None,
) -> Principal:
    """Build a principal, dropping the tenant for platform owners."""
    return Principal(
        principal_id=UUID("11111111-1111-1111-1111-111111111111"),
        email="someone@family.local",
        name="Someone",
        role=role,
        tenant_id=None if role is Role.PLATFORM_OWNER else tenant_id,
        birth_date=birth_date,
    )

@pytest.fixture()
def platform_owner() -> Principal:
    return _make_principal(Role.PLATFORM_OWNER)

@pytest.fixture()
def tenant_owner() -> Principal:
    return _make_principal(Role.TENANT_OWNER)

@pytest.fixture()
def minor() -> Principal:
    """Restricted member who is 12 on the reference date used in tests."""
    return _make_principal(Role.RESTRICTED_MEMBER, birth_date=date(2014, 1, 1))
