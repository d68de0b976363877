"""Principal management REST API.

Lists and changes principals within the caller's scope. Tenant owners
manage their own family; platform owners manage every tenant, or one
tenant when they select it with ``X-Tenant-ID``. Deleting a principal
disables it; the record stays so history keeps pointing at it.
"""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003 -- pydantic needs them at runtime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID  # noqa: TC003 -- FastAPI needs UUID at runtime for path params

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from kinship.domain.identity.dependencies import PasswordHasher
from kinship.domain.identity.principal_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PrincipalAdministrationService,
)
from kinship.foundation.domain.capabilities import Action
from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role
from kinship.infra.auth.dependencies import require_action
from kinship.infra.persistence.database import DbSession

if TYPE_CHECKING:
    from kinship.domain.identity.principal import PrincipalRecord

router = APIRouter(prefix="/principals", tags=["principals"])


# -- Request / Response models ------------------------------------------------


class CreatePrincipalRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    role: Role = Role.RESTRICTED_MEMBER
    password: str | None = Field(default=None, min_length=8, max_length=72)
    username: str | None = Field(default=None, min_length=3, max_length=50)
    birth_date: date | None = None
    tenant_id: UUID | None = Field(
        default=None,
        description="Platform owners only; ignored for tenant members",
    )


class UpdatePrincipalRequest(BaseModel):
    email: str | None = Field(default=None, min_length=3, max_length=255)
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    username: str | None = Field(default=None, min_length=3, max_length=50)
    role: Role | None = None
    birth_date: date | None = None
    active: bool | None = None
    password: str | None = Field(default=None, min_length=8, max_length=72)


class PrincipalResponse(BaseModel):
    id: UUID
    email: str
    username: str | None
    display_name: str
    role: str
    tenant_id: UUID | None
    birth_date: date | None
    active: bool
    email_verified: bool
    created_at: datetime
    last_authenticated_at: datetime | None


class PrincipalListResponse(BaseModel):
    principals: list[PrincipalResponse]
    page: int
    page_size: int
    total: int
    total_pages: int


# -- Dependencies -------------------------------------------------------------


def get_principal_service(
    session: DbSession,
    hasher: PasswordHasher,
) -> PrincipalAdministrationService:
    return PrincipalAdministrationService(session, hasher)


PrincipalService = Annotated[PrincipalAdministrationService, Depends(get_principal_service)]


# -- Endpoints ----------------------------------------------------------------


@router.get("", dependencies=[Depends(require_action(Action.PRINCIPAL_READ))])
def list_principals(
    service: PrincipalService,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> PrincipalListResponse:
    """Principals in the caller's scope, newest first."""
    result = service.list_principals(page, page_size)
    return PrincipalListResponse(
        principals=[_principal_response(p) for p in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/{principal_id}", dependencies=[Depends(require_action(Action.PRINCIPAL_READ))])
def get_principal(principal_id: UUID, service: PrincipalService) -> PrincipalResponse:
    return _principal_response(service.get(principal_id))


@router.post("", status_code=201)
def create_principal(
    body: CreatePrincipalRequest,
    actor: Annotated[Principal, Depends(require_action(Action.PRINCIPAL_CREATE))],
    service: PrincipalService,
) -> PrincipalResponse:
    """Create a principal. Only platform owners may create platform owners."""
    record = service.create(
        actor,
        email=body.email,
        display_name=body.display_name,
        role=body.role,
        password=body.password,
        username=body.username,
        birth_date=body.birth_date,
        tenant_id=body.tenant_id,
    )
    return _principal_response(record)


@router.patch("/{principal_id}")
def update_principal(
    principal_id: UUID,
    body: UpdatePrincipalRequest,
    actor: Annotated[Principal, Depends(require_action(Action.PRINCIPAL_UPDATE))],
    service: PrincipalService,
) -> PrincipalResponse:
    """Change profile fields, role, password or active flag."""
    record = service.update(
        actor,
        principal_id,
        email=body.email,
        display_name=body.display_name,
        username=body.username,
        role=body.role,
        birth_date=body.birth_date,
        active=body.active,
        password=body.password,
    )
    return _principal_response(record)


@router.delete("/{principal_id}")
def disable_principal(
    principal_id: UUID,
    actor: Annotated[Principal, Depends(require_action(Action.PRINCIPAL_DELETE))],
    service: PrincipalService,
) -> PrincipalResponse:
    """Disable a principal. Its sessions stop working on the next request."""
    return _principal_response(service.disable(actor, principal_id))


# -- Helpers ------------------------------------------------------------------


def _principal_response(record: PrincipalRecord) -> PrincipalResponse:
    return PrincipalResponse(
        id=record.id,
        email=record.email,
        username=record.username,
        display_name=record.display_name,
        role=record.role,
        tenant_id=record.tenant_id,
        birth_date=record.birth_date,
        active=record.active,
        email_verified=record.email_verified,
        created_at=record.created_at,
        last_authenticated_at=record.last_authenticated_at,
    )
