"""Middleware components for the kinship FastAPI integration."""

from kinship.infra.fastapi.middleware.request_id import (
    RequestIdMiddleware,
    get_request_id,
)
from kinship.infra.fastapi.middleware.tenant_scope import TenantScopeMiddleware

__all__ = [
    "RequestIdMiddleware",
    "TenantScopeMiddleware",
    "get_request_id",
]
