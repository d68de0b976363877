"""Chores REST API.

Every family role may read and change chores. A platform owner lists
chores across every family, but must select a family with ``X-Tenant-ID``
to create one.
"""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003 -- pydantic needs them at runtime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID  # noqa: TC003 -- FastAPI needs UUID at runtime for path params

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from kinship.domain.household.chore import ChorePriority, ChoreStatus
from kinship.domain.household.chore_service import ChoreService
from kinship.foundation.domain.capabilities import Action
from kinship.foundation.domain.principal import Principal
from kinship.infra.auth.dependencies import TargetTenantId, require_action
from kinship.infra.persistence.database import DbSession

if TYPE_CHECKING:
    from kinship.domain.household.chore import ChoreRecord

router = APIRouter(prefix="/chores", tags=["chores"])


class CreateChoreRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=4000)
    priority: ChorePriority = ChorePriority.NORMAL
    due_date: date | None = None
    assigned_to: UUID | None = None


class UpdateChoreRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=4000)
    priority: ChorePriority | None = None
    due_date: date | None = None
    assigned_to: UUID | None = None
    status: ChoreStatus | None = None


class ChoreResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    title: str
    notes: str | None
    priority: str
    status: str
    due_date: date | None
    assigned_to: UUID | None
    completed_at: datetime | None
    created_at: datetime


def get_chore_service(session: DbSession) -> ChoreService:
    return ChoreService(session)


Chores = Annotated[ChoreService, Depends(get_chore_service)]


@router.get("", dependencies=[Depends(require_action(Action.CHORE_READ))])
def list_chores(service: Chores, status: ChoreStatus | None = None) -> list[ChoreResponse]:
    return [_chore_response(c) for c in service.list_chores(status)]


@router.post("", status_code=201)
def create_chore(
    body: CreateChoreRequest,
    actor: Annotated[Principal, Depends(require_action(Action.CHORE_CREATE))],
    tenant_id: TargetTenantId,
    service: Chores,
) -> ChoreResponse:
    chore = service.create(
        actor,
        tenant_id,
        title=body.title,
        notes=body.notes,
        priority=body.priority,
        due_date=body.due_date,
        assigned_to=body.assigned_to,
    )
    return _chore_response(chore)


@router.get("/{chore_id}", dependencies=[Depends(require_action(Action.CHORE_READ))])
def get_chore(chore_id: UUID, service: Chores) -> ChoreResponse:
    return _chore_response(service.get(chore_id))


@router.patch("/{chore_id}", dependencies=[Depends(require_action(Action.CHORE_UPDATE))])
def update_chore(chore_id: UUID, body: UpdateChoreRequest, service: Chores) -> ChoreResponse:
    chore = service.update(
        chore_id,
        title=body.title,
        notes=body.notes,
        priority=body.priority,
        due_date=body.due_date,
        assigned_to=body.assigned_to,
        status=body.status,
    )
    return _chore_response(chore)


@router.post(
    "/{chore_id}/complete",
    dependencies=[Depends(require_action(Action.CHORE_UPDATE))],
)
def complete_chore(chore_id: UUID, service: Chores) -> ChoreResponse:
    return _chore_response(service.complete(chore_id))


@router.delete("/{chore_id}", status_code=204)
def delete_chore(
    chore_id: UUID,
    actor: Annotated[Principal, Depends(require_action(Action.CHORE_DELETE))],
    service: Chores,
) -> Response:
    service.delete(chore_id, actor)
    return Response(status_code=204)


def _chore_response(chore: ChoreRecord) -> ChoreResponse:
    return ChoreResponse(
        id=chore.id,
        tenant_id=chore.tenant_id,  # type: ignore[arg-type]
        title=chore.title,
        notes=chore.notes,
        priority=chore.priority,
        status=chore.status,
        due_date=chore.due_date,
        assigned_to=chore.assigned_to,
        completed_at=chore.completed_at,
        created_at=chore.created_at,
    )
