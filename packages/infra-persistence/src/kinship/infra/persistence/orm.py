"""Declarative base and mixins shared by every persisted record.

Any mapped class that inherits :class:`TenantOwnedMixin` is filtered and
guarded by the tenant-scoping enforcer in
:mod:`kinship.infra.persistence.tenant_scoping`. There is no opt-in per
query: inheriting the mixin is the whole contract.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import ClassVar
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all kinship tables."""


class TimestampMixin:
    """``created_at`` / ``updated_at`` columns maintained by the ORM."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class TenantOwnedMixin:
    """Marks a record as owned by exactly one tenant.

    Records whose owner may legitimately be absent (platform owner
    principals) set ``__tenant_nullable__ = True``. Such rows are only
    visible under a cross-tenant scope.
    """

    __tenant_nullable__: ClassVar[bool] = False

    @declared_attr
    def tenant_id(cls) -> Mapped[UUID | None]:
        return mapped_column(
            Uuid,
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=cls.__tenant_nullable__,
            index=True,
        )
