"""Kinship Infra FastAPI -- app factory, error handlers, request middleware."""

from kinship.infra.fastapi.app_factory import ALL_GROUPS, create_app
from kinship.infra.fastapi.error_handlers import (
    ProblemDetail,
    register_exception_handlers,
)
from kinship.infra.fastapi.middleware.request_id import (
    RequestIdMiddleware,
    get_request_id,
)
from kinship.infra.fastapi.middleware.tenant_scope import TenantScopeMiddleware
from kinship.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "ALL_GROUPS",
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "TenantScopeMiddleware",
    "create_app",
    "get_request_id",
    "register_exception_handlers",
]
