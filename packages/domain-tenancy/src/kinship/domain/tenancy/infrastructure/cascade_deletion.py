"""Cascade deletion of everything a tenant owns.

Walks every mapped class that inherits ``TenantOwnedMixin`` and deletes its
rows for the tenant through the ORM, so relationship cascades (e.g. a
principal's external identity links) run as well. Runs inside the caller's
unit of work; nothing is committed here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select

from kinship.infra.persistence.orm import Base, TenantOwnedMixin

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass
class CascadeDeletionResult:
    """Result of a cascade deletion.

    Attributes:
        rows_deleted: Deleted row count per table, for tables that had rows.
    """

    rows_deleted: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.rows_deleted.values())


def tenant_owned_classes() -> list[type[TenantOwnedMixin]]:
    """Every mapped class owned by a tenant, in a stable order."""
    classes = [
        mapper.class_
        for mapper in Base.registry.mappers
        if issubclass(mapper.class_, TenantOwnedMixin)
    ]
    return sorted(classes, key=lambda cls: cls.__name__)


class CascadeDeletionService:
    """Removes the tenant-owned rows of one tenant.

    The caller deletes the tenant row itself afterwards. Tenant-owned rows
    are flushed first so the tenant foreign key is never left dangling,
    including on databases that do not apply ``ON DELETE CASCADE``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def delete_tenant_data(self, tenant_id: UUID) -> CascadeDeletionResult:
        """Delete every tenant-owned row of ``tenant_id``.

        Args:
            tenant_id: Tenant being deleted.

        Returns:
            CascadeDeletionResult with per-table counts.
        """
        result = CascadeDeletionResult()
        logger.info("cascade_deletion_started", extra={"tenant_id": str(tenant_id)})

        for cls in tenant_owned_classes():
            rows = self._session.scalars(select(cls).where(cls.tenant_id == tenant_id)).all()
            for row in rows:
                self._session.delete(row)
            if rows:
                result.rows_deleted[cls.__tablename__] = len(rows)  # type: ignore[attr-defined]

        self._session.flush()
        logger.info(
            "cascade_deletion_completed",
            extra={
                "tenant_id": str(tenant_id),
                "rows_deleted": result.rows_deleted,
                "total": result.total,
            },
        )
        return result
