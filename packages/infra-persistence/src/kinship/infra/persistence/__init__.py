"""Kinship Infra Persistence -- sessions, declarative base, tenant scoping, Redis."""

from kinship.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    DbSession,
    dispose_engine,
    get_database_manager,
    get_db_session,
    get_engine,
    get_session_factory,
)
from kinship.infra.persistence.lifespan import lifespan_contribution
from kinship.infra.persistence.orm import Base, TenantOwnedMixin, TimestampMixin, utc_now
from kinship.infra.persistence.redis_client import RedisFactory, get_redis_factory
from kinship.infra.persistence.redis_settings import RedisSettings
from kinship.infra.persistence.tenant_scoping import register_tenant_scoping

__all__ = [
    "Base",
    "DatabaseManager",
    "DatabaseSettings",
    "DbSession",
    "RedisFactory",
    "RedisSettings",
    "TenantOwnedMixin",
    "TimestampMixin",
    "dispose_engine",
    "get_database_manager",
    "get_db_session",
    "get_engine",
    "get_redis_factory",
    "get_session_factory",
    "lifespan_contribution",
    "register_tenant_scoping",
    "utc_now",
]
