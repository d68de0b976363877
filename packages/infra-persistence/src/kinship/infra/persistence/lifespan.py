"""Persistence lifespan hook for startup/shutdown resource management.

Handles:
- Tenant-scoping enforcer registration
- Table creation for every model imported so far
- Database health check on startup (SELECT 1)
- Engine disposal and Redis client close on shutdown

Priority 75 starts persistence after observability (50) and before the
identity directory (90) and auth (100), which both need a session factory.
Routers are imported by the app factory before the lifespan runs, so every
domain model is registered on ``Base.metadata`` by then.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from kinship.foundation.application.contributions import (
    LIFESPAN_PRIORITY_PERSISTENCE,
    LifespanContribution,
)
from kinship.infra.persistence.database import get_database_manager
from kinship.infra.persistence.orm import Base
from kinship.infra.persistence.redis_client import get_redis_factory
from kinship.infra.persistence.tenant_scoping import register_tenant_scoping

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _persistence_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage persistence resources across the application lifecycle.

    Startup:
        1. Register the tenant-scoping session events.
        2. Create missing tables.
        3. Execute ``SELECT 1`` health check.

    Shutdown:
        1. Dispose the engine and its pool.
        2. Close the Redis client if one was opened.

    Args:
        app: The application instance (unused but required by protocol).
    """
    manager = get_database_manager()

    register_tenant_scoping()

    engine = manager.get_engine()
    Base.metadata.create_all(engine)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info(
        "persistence_ready",
        extra={
            "backend": engine.url.get_backend_name(),
            "tables": len(Base.metadata.tables),
        },
    )

    try:
        yield
    finally:
        manager.dispose()
        logger.info("persistence_engine_disposed")

        redis_factory = get_redis_factory()
        if redis_factory.connected:
            try:
                await redis_factory.close()
            except Exception:
                logger.warning("persistence_redis_close_failed", exc_info=True)


lifespan_contribution = LifespanContribution(
    hook=_persistence_lifespan,
    priority=LIFESPAN_PRIORITY_PERSISTENCE,
)
