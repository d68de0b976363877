"""Kinship Domain Tenancy -- family accounts and their platform administration."""

from kinship.domain.tenancy.tenant import TenantRecord
from kinship.domain.tenancy.tenant_service import TenantAdministrationService, TenantPage

__all__ = [
    "TenantAdministrationService",
    "TenantPage",
    "TenantRecord",
]
