"""Tenant record: one family account.

A tenant owns every :class:`~kinship.infra.persistence.orm.TenantOwnedMixin`
row that carries its id. The ``domain`` is the routing key used by
self-registration and external sign-up; it is stored lowercased so the
unique index also enforces case-insensitive uniqueness.

Deactivating a tenant blocks authentication of all of its non-platform
principals on their next request.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from kinship.infra.persistence.orm import Base, TimestampMixin


class TenantRecord(TimestampMixin, Base):
    """Row of the ``tenants`` table.

    Attributes:
        id: Tenant identifier carried by principals and tenant-owned rows.
        name: Display name of the family.
        domain: Unique lowercased routing key.
        active: False blocks every non-platform principal of the tenant.
    """

    __tablename__ = "tenants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255))
    domain: Mapped[str] = mapped_column(String(253), unique=True, index=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"TenantRecord(id={self.id!s}, domain={self.domain!r}, active={self.active})"
