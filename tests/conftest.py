"""Shared fixtures for integration tests.

The app is built through entry-point discovery exactly as in production,
against an in-memory SQLite database. Cached settings and engines are
cleared around every test so each test gets a fresh database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from kinship.domain.identity.principal import PrincipalRecord
from kinship.domain.tenancy.tenant import TenantRecord
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.roles import Role
from kinship.infra.auth.passwords import BcryptPasswordHasher
from kinship.infra.auth.settings import get_auth_settings
from kinship.infra.fastapi import AppSettings, create_app
from kinship.infra.observability import get_logging_settings
from kinship.infra.persistence.database import get_database_manager, get_session_factory
from kinship.infra.persistence.redis_client import get_redis_factory

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from uuid import UUID

    from fastapi import FastAPI

TOKEN_SECRET = "integration-secret-0123456789-abcdefghij"
BYPASS_TOKEN = "integration-bypass-literal"
PASSWORD = "correct horse battery"


def _clear_caches() -> None:
    get_database_manager.cache_clear()
    get_auth_settings.cache_clear()
    get_redis_factory.cache_clear()
    get_logging_settings.cache_clear()


@dataclass
class Family:
    tenant_id: UUID
    domain: str
    owner_id: UUID
    owner_email: str
    child_id: UUID
    child_email: str


@dataclass
class World:
    smiths: Family
    joneses: Family
    platform_owner_email: str


@pytest.fixture()
def kinship_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point every settings class at test values."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("AUTH_TOKEN_SECRET", TOKEN_SECRET)
    monkeypatch.setenv("AUTH_BYPASS_ENABLED", "true")
    monkeypatch.setenv("AUTH_BYPASS_TOKEN", BYPASS_TOKEN)
    monkeypatch.setenv("AUTH_CORRELATION_BACKEND", "memory")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://app.kinship.example")
    monkeypatch.setenv("CORS_ALLOW_CREDENTIALS", "true")
    _clear_caches()
    yield
    _clear_caches()


@pytest.fixture()
def app(kinship_env: None) -> FastAPI:
    return create_app(settings=AppSettings())


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    """TestClient with every lifespan hook running."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def _family(name: str, domain: str, hasher: BcryptPasswordHasher) -> Family:
    tenant = TenantRecord(name=name, domain=domain)
    owner = PrincipalRecord(
        email=f"owner@{domain}",
        username="parent",
        display_name=f"{name} parent",
        password_hash=hasher.hash(PASSWORD),
        role=Role.TENANT_OWNER.value,
        birth_date=date(1980, 5, 1),
        email_verified=True,
    )
    today = date.today()
    child = PrincipalRecord(
        email=f"kid@{domain}",
        display_name=f"{name} kid",
        password_hash=hasher.hash(PASSWORD),
        role=Role.RESTRICTED_MEMBER.value,
        birth_date=date(today.year - 11, 1, 1),
        email_verified=True,
    )
    with elevated_scope("integration seed"), get_session_factory()() as session:
        session.add(tenant)
        session.flush()
        owner.tenant_id = tenant.id
        child.tenant_id = tenant.id
        session.add_all([owner, child])
        session.commit()
        return Family(
            tenant_id=tenant.id,
            domain=domain,
            owner_id=owner.id,
            owner_email=owner.email,
            child_id=child.id,
            child_email=child.email,
        )


@pytest.fixture()
def world(client: TestClient) -> World:
    """Two families and one platform owner, seeded after startup."""
    hasher = BcryptPasswordHasher(rounds=4)
    smiths = _family("Smith", "smith.family", hasher)
    joneses = _family("Jones", "jones.family", hasher)
    root = PrincipalRecord(
        email="root@kinship.example",
        display_name="Root",
        password_hash=hasher.hash(PASSWORD),
        role=Role.PLATFORM_OWNER.value,
        tenant_id=None,
        email_verified=True,
    )
    with elevated_scope("integration seed"), get_session_factory()() as session:
        session.add(root)
        session.commit()
    return World(smiths=smiths, joneses=joneses, platform_owner_email=root.email)


@pytest.fixture()
def sign_in(client: TestClient) -> Callable[..., dict[str, str]]:
    """Sign in through ``/auth/login`` and return an Authorization header.

    The session cookie is dropped so every request states its credential.
    """

    def _sign_in(identifier: str, password: str = PASSWORD, **extra: object) -> dict[str, str]:
        resp = client.post(
            "/auth/login", json={"identifier": identifier, "password": password, **extra}
        )
        assert resp.status_code == 200, resp.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _sign_in


@pytest.fixture()
def bypass_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {BYPASS_TOKEN}"}
