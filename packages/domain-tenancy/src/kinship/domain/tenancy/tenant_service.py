"""Platform tenant administration.

Create, list, read, update, activate/deactivate and delete tenants. Every
method is reached only through routes gated on a ``tenant:*`` action.

Deletion policy: a tenant that still has active principals cannot be
deleted (``ConflictError``). Otherwise its inactive principals and all of
its tenant-owned content are removed together with the tenant row.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from kinship.domain.tenancy.infrastructure.cascade_deletion import (
    CascadeDeletionResult,
    CascadeDeletionService,
)
from kinship.domain.tenancy.infrastructure.tenant_repository import TenantRepository
from kinship.domain.tenancy.tenant import TenantRecord
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.exceptions import (
    ConflictError,
    DomainConflictError,
    NotFoundError,
    ValidationError,
)
from kinship.foundation.domain.tenant_value_objects import TenantDomain, TenantName

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

    from kinship.foundation.domain.ports import TenantMembershipPort

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class TenantPage:
    """One page of tenants."""

    items: list[TenantRecord]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def _domain(value: str) -> str:
    try:
        return TenantDomain(value).value
    except ValueError as exc:
        raise ValidationError("domain", str(exc)) from exc


def _name(value: str) -> str:
    try:
        return TenantName(value).value
    except ValueError as exc:
        raise ValidationError("name", str(exc)) from exc


class TenantAdministrationService:
    """Tenant lifecycle operations for platform owners.

    Args:
        session: Request-scoped session. The service commits its own writes.
        membership: Counts active principals for the deletion policy.
    """

    def __init__(self, session: Session, membership: TenantMembershipPort | None = None) -> None:
        self._session = session
        self._tenants = TenantRepository(session)
        self._membership = membership

    def create(self, name: str, domain: str, *, active: bool = True) -> TenantRecord:
        """Create a tenant with a unique routing domain.

        Raises:
            ValidationError: Malformed name or domain.
            DomainConflictError: Domain already in use.
        """
        tenant = TenantRecord(name=_name(name), domain=_domain(domain), active=active)
        if self._tenants.find_by_domain(tenant.domain) is not None:
            raise DomainConflictError(tenant.domain)

        self._tenants.add(tenant)
        self._commit(tenant.domain)
        logger.info(
            "tenant_created",
            extra={"tenant_id": str(tenant.id), "domain": tenant.domain},
        )
        return tenant

    def list_tenants(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> TenantPage:
        """List tenants newest first.

        Args:
            page: 1-based page number.
            page_size: Tenants per page, at most ``MAX_PAGE_SIZE``.
        """
        if page < 1:
            raise ValidationError("page", "must be at least 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError("page_size", f"must be between 1 and {MAX_PAGE_SIZE}")
        items, total = self._tenants.list_page((page - 1) * page_size, page_size)
        return TenantPage(items=items, page=page, page_size=page_size, total=total)

    def get(self, tenant_id: UUID) -> TenantRecord:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant", tenant_id)
        return tenant

    def update(
        self,
        tenant_id: UUID,
        *,
        name: str | None = None,
        domain: str | None = None,
        active: bool | None = None,
    ) -> TenantRecord:
        """Rename, re-route or toggle a tenant.

        A domain change re-checks uniqueness against every other tenant.

        Raises:
            NotFoundError: Unknown tenant.
            DomainConflictError: New domain already in use.
        """
        tenant = self.get(tenant_id)
        if name is not None:
            tenant.name = _name(name)
        if domain is not None:
            new_domain = _domain(domain)
            if new_domain != tenant.domain:
                existing = self._tenants.find_by_domain(new_domain)
                if existing is not None and existing.id != tenant.id:
                    raise DomainConflictError(new_domain)
                tenant.domain = new_domain
        if active is not None and active != tenant.active:
            tenant.active = active
            logger.info(
                "tenant_activated" if active else "tenant_deactivated",
                extra={"tenant_id": str(tenant.id)},
            )

        self._commit(tenant.domain)
        return tenant

    def set_active(self, tenant_id: UUID, active: bool) -> TenantRecord:
        """Activate or deactivate a tenant.

        Deactivation takes effect on the next request of every principal
        of the tenant, since the resolver reloads tenant state each time.
        """
        return self.update(tenant_id, active=active)

    def delete(self, tenant_id: UUID) -> CascadeDeletionResult:
        """Delete a tenant and everything it owns.

        Raises:
            NotFoundError: Unknown tenant.
            ConflictError: The tenant still has active principals.
        """
        if self._membership is None:
            msg = "Tenant deletion requires a membership port"
            raise RuntimeError(msg)

        tenant = self.get(tenant_id)

        # The caller may be pinned to another tenant; principals and ownership
        # rows of this tenant must be visible to the count and the cascade.
        # Both run in this session, so they share one transaction.
        with elevated_scope("tenant_deletion"):
            active_principals = self._membership.count_active_principals(
                tenant.id, session=self._session
            )
            if active_principals:
                raise ConflictError(
                    "Tenant still has active principals",
                    tenant_id=str(tenant.id),
                    active_principals=active_principals,
                )
            result = CascadeDeletionService(self._session).delete_tenant_data(tenant.id)
            self._tenants.delete(tenant)
            self._session.commit()

        logger.info(
            "tenant_deleted",
            extra={"tenant_id": str(tenant_id), "rows_deleted": result.total},
        )
        return result

    def _commit(self, domain: str) -> None:
        try:
            self._session.commit()
        except IntegrityError as exc:
            # Concurrent insert won the unique index.
            self._session.rollback()
            raise DomainConflictError(domain) from exc
