"""Kinship Foundation Application -- request context, decisions, tenant scope."""

from kinship.foundation.application.authorization import (
    Decision,
    DenialReason,
    Denied,
    Granted,
    accessible_pages,
    authorize,
    can_access_page,
    ensure_authorized,
    evaluate,
)
from kinship.foundation.application.context import (
    NoRequestContextError,
    clear_principal_context,
    clear_tenant_scope,
    elevated_scope,
    get_current_principal,
    get_optional_principal,
    get_optional_tenant_scope,
    get_tenant_scope,
    scoped_to,
    set_principal_context,
    set_tenant_scope,
)
from kinship.foundation.application.contributions import (
    ErrorHandlerContribution,
    LifespanContribution,
    MiddlewareContribution,
)
from kinship.foundation.application.discovery import (
    DiscoveredContribution,
    discover,
)
from kinship.foundation.application.tenant_scope import (
    TenantScope,
    require_tenant_context,
    resolve_tenant_scope,
)

__all__ = [
    "Decision",
    "DenialReason",
    "Denied",
    "DiscoveredContribution",
    "ErrorHandlerContribution",
    "Granted",
    "LifespanContribution",
    "MiddlewareContribution",
    "NoRequestContextError",
    "TenantScope",
    "accessible_pages",
    "authorize",
    "can_access_page",
    "clear_principal_context",
    "clear_tenant_scope",
    "discover",
    "elevated_scope",
    "ensure_authorized",
    "evaluate",
    "get_current_principal",
    "get_optional_principal",
    "get_optional_tenant_scope",
    "get_tenant_scope",
    "require_tenant_context",
    "resolve_tenant_scope",
    "scoped_to",
    "set_principal_context",
    "set_tenant_scope",
]
