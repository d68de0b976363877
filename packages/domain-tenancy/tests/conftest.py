"""Shared fixtures for domain-tenancy tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kinship.foundation.application.context import elevated_scope
from kinship.infra.persistence.orm import Base
from kinship.infra.persistence.tenant_scoping import register_tenant_scoping

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine


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
    """Session used under a platform owner's cross-tenant scope."""
    with elevated_scope("test"), session_factory() as session:
        yield session
