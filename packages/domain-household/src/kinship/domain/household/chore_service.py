"""Chore operations for the family in scope.

The service never filters by tenant itself. The enforcer adds the tenant
criteria to every query and stamps or checks the tenant on every flush,
so a chore id from another family is simply not found.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from kinship.domain.household.chore import ChorePriority, ChoreRecord, ChoreStatus
from kinship.foundation.domain.exceptions import NotFoundError, ValidationError

if TYPE_CHECKING:
    from datetime import date
    from uuid import UUID

    from sqlalchemy.orm import Session

    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255


def _title(value: str) -> str:
    title = value.strip()
    if not title:
        raise ValidationError("title", "Title cannot be empty")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError("title", f"Title too long (max {MAX_TITLE_LENGTH})")
    return title


def _priority(value: ChorePriority | str) -> str:
    try:
        return ChorePriority(value).value
    except ValueError as exc:
        raise ValidationError("priority", f"Unknown priority '{value}'") from exc


class ChoreService:
    """Create, list, change and remove chores.

    Args:
        session: Request-scoped session. The service commits its own writes.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_chores(self, status: ChoreStatus | None = None) -> list[ChoreRecord]:
        """Chores in scope, pending first, then by due date."""
        stmt = select(ChoreRecord)
        if status is not None:
            stmt = stmt.where(ChoreRecord.status == status.value)
        stmt = stmt.order_by(
            ChoreRecord.status.desc(),
            ChoreRecord.due_date.is_(None),
            ChoreRecord.due_date,
            ChoreRecord.created_at,
        )
        return list(self._session.scalars(stmt))

    def get(self, chore_id: UUID) -> ChoreRecord:
        chore = self._session.scalars(
            select(ChoreRecord).where(ChoreRecord.id == chore_id)
        ).one_or_none()
        if chore is None:
            raise NotFoundError("Chore", chore_id)
        return chore

    def create(
        self,
        actor: Principal,
        tenant_id: UUID,
        *,
        title: str,
        notes: str | None = None,
        priority: ChorePriority | str = ChorePriority.NORMAL,
        due_date: date | None = None,
        assigned_to: UUID | None = None,
    ) -> ChoreRecord:
        """Add a chore to ``tenant_id``.

        Args:
            actor: Principal creating the chore.
            tenant_id: Family the chore belongs to, as required by the caller.

        Raises:
            ValidationError: Empty title or unknown priority.
        """
        chore = ChoreRecord(
            tenant_id=tenant_id,
            title=_title(title),
            notes=notes,
            priority=_priority(priority),
            status=ChoreStatus.PENDING.value,
            due_date=due_date,
            assigned_to=assigned_to,
        )
        self._session.add(chore)
        self._session.commit()
        logger.info(
            "chore_created",
            extra={
                "chore_id": str(chore.id),
                "tenant_id": str(tenant_id),
                "actor_id": str(actor.principal_id),
            },
        )
        return chore

    def update(
        self,
        chore_id: UUID,
        *,
        title: str | None = None,
        notes: str | None = None,
        priority: ChorePriority | str | None = None,
        due_date: date | None = None,
        assigned_to: UUID | None = None,
        status: ChoreStatus | None = None,
    ) -> ChoreRecord:
        chore = self.get(chore_id)
        if title is not None:
            chore.title = _title(title)
        if notes is not None:
            chore.notes = notes
        if priority is not None:
            chore.priority = _priority(priority)
        if due_date is not None:
            chore.due_date = due_date
        if assigned_to is not None:
            chore.assigned_to = assigned_to
        if status is not None and status.value != chore.status:
            chore.status = status.value
            chore.completed_at = datetime.now(UTC) if status is ChoreStatus.COMPLETED else None
        self._session.commit()
        return chore

    def complete(self, chore_id: UUID) -> ChoreRecord:
        """Mark a chore completed. Completing it again changes nothing."""
        return self.update(chore_id, status=ChoreStatus.COMPLETED)

    def delete(self, chore_id: UUID, actor: Principal) -> None:
        chore = self.get(chore_id)
        self._session.delete(chore)
        self._session.commit()
        logger.info(
            "chore_deleted",
            extra={"chore_id": str(chore_id), "actor_id": str(actor.principal_id)},
        )
