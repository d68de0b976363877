"""Platform tenant administration REST API.

Every route is gated on a ``tenant:*`` action, which only platform owners
hold. Mounted by ``create_app()`` through the ``kinship.routers`` entry
point.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 -- pydantic needs it at runtime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID  # noqa: TC003 -- FastAPI needs UUID at runtime for path params

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from kinship.domain.tenancy.tenant_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    TenantAdministrationService,
)
from kinship.foundation.domain.capabilities import Action
from kinship.foundation.domain.ports import TenantMembershipPort
from kinship.infra.auth.dependencies import require_action
from kinship.infra.persistence.database import DbSession

if TYPE_CHECKING:
    from kinship.domain.tenancy.tenant import TenantRecord

router = APIRouter(prefix="/platform/tenants", tags=["platform"])


# -- Request / Response models ------------------------------------------------


class CreateTenantRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    domain: str = Field(min_length=2, max_length=253)
    active: bool = True


class UpdateTenantRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    domain: str | None = Field(default=None, min_length=2, max_length=253)
    active: bool | None = None


class TenantResponse(BaseModel):
    id: UUID
    name: str
    domain: str
    active: bool
    created_at: datetime
    updated_at: datetime


class TenantListResponse(BaseModel):
    tenants: list[TenantResponse]
    page: int
    page_size: int
    total: int
    total_pages: int


class TenantDeletedResponse(BaseModel):
    id: UUID
    rows_deleted: dict[str, int]


# -- Dependencies -------------------------------------------------------------


def get_tenant_membership(request: Request) -> TenantMembershipPort:
    """Membership port published on ``app.state`` by the identity lifespan."""
    membership = getattr(request.app.state, "tenant_membership", None)
    if membership is None:
        raise HTTPException(status_code=503, detail="Tenant membership not configured")
    return membership  # type: ignore[no-any-return]


def get_tenant_service(session: DbSession) -> TenantAdministrationService:
    return TenantAdministrationService(session)


TenantService = Annotated[TenantAdministrationService, Depends(get_tenant_service)]


# -- Endpoints ----------------------------------------------------------------


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(require_action(Action.TENANT_CREATE))],
)
def create_tenant(body: CreateTenantRequest, service: TenantService) -> TenantResponse:
    """Create a tenant. The domain must be unused."""
    return _tenant_response(service.create(body.name, body.domain, active=body.active))


@router.get("", dependencies=[Depends(require_action(Action.TENANT_READ_ALL))])
def list_tenants(
    service: TenantService,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> TenantListResponse:
    """List tenants, newest first."""
    result = service.list_tenants(page, page_size)
    return TenantListResponse(
        tenants=[_tenant_response(t) for t in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/{tenant_id}", dependencies=[Depends(require_action(Action.TENANT_READ_ALL))])
def get_tenant(tenant_id: UUID, service: TenantService) -> TenantResponse:
    return _tenant_response(service.get(tenant_id))


@router.put("/{tenant_id}", dependencies=[Depends(require_action(Action.TENANT_UPDATE))])
def update_tenant(
    tenant_id: UUID,
    body: UpdateTenantRequest,
    service: TenantService,
) -> TenantResponse:
    """Rename, change the domain of, or toggle a tenant."""
    tenant = service.update(tenant_id, name=body.name, domain=body.domain, active=body.active)
    return _tenant_response(tenant)


@router.post(
    "/{tenant_id}/activate",
    dependencies=[Depends(require_action(Action.TENANT_UPDATE))],
)
def activate_tenant(tenant_id: UUID, service: TenantService) -> TenantResponse:
    return _tenant_response(service.set_active(tenant_id, True))


@router.post(
    "/{tenant_id}/deactivate",
    dependencies=[Depends(require_action(Action.TENANT_UPDATE))],
)
def deactivate_tenant(tenant_id: UUID, service: TenantService) -> TenantResponse:
    """Disable a tenant. Its principals fail authentication from the next request."""
    return _tenant_response(service.set_active(tenant_id, False))


@router.delete("/{tenant_id}", dependencies=[Depends(require_action(Action.TENANT_DELETE))])
def delete_tenant(
    tenant_id: UUID,
    session: DbSession,
    membership: Annotated[TenantMembershipPort, Depends(get_tenant_membership)],
) -> TenantDeletedResponse:
    """Delete a tenant with no active principals, and everything it owns."""
    result = TenantAdministrationService(session, membership).delete(tenant_id)
    return TenantDeletedResponse(id=tenant_id, rows_deleted=result.rows_deleted)


# -- Helpers ------------------------------------------------------------------


def _tenant_response(tenant: TenantRecord) -> TenantResponse:
    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        domain=tenant.domain,
        active=tenant.active,
        created_at=tenant.created_at,
        updated_at=tenant.updated_at,
    )
