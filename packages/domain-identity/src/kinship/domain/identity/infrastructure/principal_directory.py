"""SQLAlchemy adapter for PrincipalDirectoryPort and TenantMembershipPort.

The authentication resolver calls this adapter on every request. Each call
opens its own short session and reads straight from the database, so role,
tenant and active-flag changes are seen on the very next request. Nothing
is cached.

Callers bind the scope: the resolver and the tenant-scope middleware both
wrap their lookups in ``elevated_scope``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from kinship.domain.identity.infrastructure.principal_repository import PrincipalRepository
from kinship.domain.tenancy.tenant import TenantRecord

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from sqlalchemy.orm import Session

    from kinship.domain.identity.principal import PrincipalRecord

logger = logging.getLogger(__name__)


class SqlAlchemyPrincipalDirectory:
    """Authoritative principal and tenant lookups backed by the ORM.

    Returned records are detached from their session; their loaded columns
    stay readable.

    Args:
        session_factory: Callable returning a new Session usable as a
            context manager.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def load_principal(self, principal_id: UUID) -> PrincipalRecord | None:
        with self._session_factory() as session:
            return PrincipalRepository(session).get(principal_id)

    def load_tenant(self, tenant_id: UUID) -> TenantRecord | None:
        with self._session_factory() as session:
            return session.get(TenantRecord, tenant_id)

    def record_authentication(self, principal_id: UUID, client_ip: str | None) -> None:
        """Stamp the time and address of a successful authentication."""
        with self._session_factory() as session:
            record = PrincipalRepository(session).get(principal_id)
            if record is None:
                return
            record.last_authenticated_at = datetime.now(UTC)
            record.last_authenticated_ip = client_ip
            session.commit()
        logger.debug("principal_authentication_recorded", extra={"principal_id": str(principal_id)})

    def count_active_principals(self, tenant_id: UUID, *, session: Session | None = None) -> int:
        if session is not None:
            return PrincipalRepository(session).count_active(tenant_id)
        with self._session_factory() as own:
            return PrincipalRepository(own).count_active(tenant_id)
