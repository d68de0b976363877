"""Chore record: a household task owned by one family.

Chores are plain tenant-owned content. Every read and write goes through
the tenant-scoping enforcer, so a chore of another family never loads.
``assigned_to`` names a principal of the same family but carries no
foreign key; a chore outlives the principal it was assigned to.
"""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003 -- SQLAlchemy resolves Mapped[] at runtime
from enum import StrEnum
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from kinship.domain.tenancy.tenant import TenantRecord  # noqa: F401 -- registers "tenants"
from kinship.infra.persistence.orm import Base, TenantOwnedMixin, TimestampMixin


class ChorePriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ChoreStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class ChoreRecord(TenantOwnedMixin, TimestampMixin, Base):
    """Row of the ``chores`` table.

    Attributes:
        title: Short description of the task.
        notes: Free-form details.
        priority: One of :class:`ChorePriority`.
        status: ``pending`` until completed.
        due_date: Optional day the chore is due.
        assigned_to: Principal expected to do it, if any.
        completed_at: When the chore was marked completed.
    """

    __tablename__ = "chores"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(16), default=ChorePriority.NORMAL.value)
    status: Mapped[str] = mapped_column(String(16), default=ChoreStatus.PENDING.value, index=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    assigned_to: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"ChoreRecord(id={self.id!s}, title={self.title!r}, status={self.status})"
