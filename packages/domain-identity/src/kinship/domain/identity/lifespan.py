"""Identity lifespan hook: publishes the principal directory.

Priority 90 runs after persistence (75), which owns the session factory,
and before auth (100), whose resolver reads the directory.

Published on ``app.state``:
    principal_directory: PrincipalDirectoryPort for the auth resolver.
    tenant_membership: TenantMembershipPort for tenant deletion.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from kinship.domain.identity.infrastructure.principal_directory import (
    SqlAlchemyPrincipalDirectory,
)
from kinship.foundation.application.contributions import (
    LIFESPAN_PRIORITY_IDENTITY,
    LifespanContribution,
)
from kinship.infra.persistence.database import get_session_factory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _identity_lifespan(app: Any) -> AsyncIterator[None]:
    directory = SqlAlchemyPrincipalDirectory(get_session_factory())
    app.state.principal_directory = directory
    app.state.tenant_membership = directory
    logger.info("identity_directory_ready")
    try:
        yield
    finally:
        app.state.principal_directory = None
        app.state.tenant_membership = None


lifespan_contribution = LifespanContribution(
    hook=_identity_lifespan,
    priority=LIFESPAN_PRIORITY_IDENTITY,
)
