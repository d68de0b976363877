"""Repository for tenant records (admin/control-plane).

Tenants are not tenant-owned, so the scoping enforcer never filters this
table. Access control is the caller's job: every route that reaches this
repository is gated on a ``tenant:*`` action, which only platform owners
hold.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from kinship.domain.tenancy.tenant import TenantRecord

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session


class TenantRepository:
    """Read/write access to the ``tenants`` table through one session.

    The repository never commits; the service owning the unit of work does.

    Args:
        session: Request-scoped SQLAlchemy session.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, tenant_id: UUID) -> TenantRecord | None:
        return self._session.get(TenantRecord, tenant_id)

    def find_by_domain(self, domain: str) -> TenantRecord | None:
        """Look up a tenant by routing key, case-insensitively."""
        stmt = select(TenantRecord).where(TenantRecord.domain == domain.strip().lower())
        return self._session.scalars(stmt).one_or_none()

    def list_page(self, offset: int, limit: int) -> tuple[list[TenantRecord], int]:
        """One page of tenants, newest first, with the overall count.

        Args:
            offset: Rows to skip.
            limit: Maximum rows to return.

        Returns:
            Tuple of (tenants on the page, total number of tenants).
        """
        total = self._session.scalar(select(func.count()).select_from(TenantRecord)) or 0
        stmt = (
            select(TenantRecord)
            .order_by(TenantRecord.created_at.desc(), TenantRecord.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self._session.scalars(stmt)), total

    def add(self, tenant: TenantRecord) -> None:
        self._session.add(tenant)

    def delete(self, tenant: TenantRecord) -> None:
        self._session.delete(tenant)
