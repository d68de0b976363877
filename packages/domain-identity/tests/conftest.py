"""Shared fixtures for domain-identity tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kinship.domain.identity.principal import PrincipalRecord
from kinship.domain.tenancy.tenant import TenantRecord
from kinship.foundation.application.context import elevated_scope
from kinship.infra.auth.passwords import BcryptPasswordHasher
from kinship.infra.persistence.orm import Base
from kinship.infra.persistence.tenant_scoping import register_tenant_scoping

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy import Engine

_T = TypeVar("_T")


@pytest.fixture()
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine with every registered table."""
    register_tenant_scoping()
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """A plain session. Tests bind the scope they need."""
    with session_factory() as session:
        yield session


@pytest.fixture(scope="session")
def hasher() -> BcryptPasswordHasher:
    """Cheapest bcrypt cost, for speed."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture()
def smiths(session_factory: sessionmaker[Session]) -> TenantRecord:
    """Active tenant ``smiths.example``."""
    return _add(session_factory, TenantRecord(name="Smiths", domain="smiths.example"))


@pytest.fixture()
def joneses(session_factory: sessionmaker[Session]) -> TenantRecord:
    """Active tenant ``joneses.example``."""
    return _add(session_factory, TenantRecord(name="Joneses", domain="joneses.example"))


@pytest.fixture()
def seed_principal(
    session_factory: sessionmaker[Session],
    hasher: BcryptPasswordHasher,
) -> Callable[..., PrincipalRecord]:
    """Factory inserting a principal with password ``correct horse``."""

    def _seed(
        email: str,
        tenant: TenantRecord | None,
        role: str = "RESTRICTED_MEMBER",
        **fields: object,
    ) -> PrincipalRecord:
        fields.setdefault("password_hash", hasher.hash("correct horse"))
        record = PrincipalRecord(
            email=email,
            display_name=email.split("@")[0].title(),
            role=role,
            tenant_id=tenant.id if tenant else None,
            **fields,
        )
        return _add(session_factory, record)

    return _seed


def _add(session_factory: sessionmaker[Session], record: _T) -> _T:
    with elevated_scope("test_seed"), session_factory() as session:
        session.add(record)
        session.commit()
    return record
