"""Kinship Domain Tenancy Infrastructure -- repository and cascade deletion."""

from kinship.domain.tenancy.infrastructure.cascade_deletion import (
    CascadeDeletionResult,
    CascadeDeletionService,
    tenant_owned_classes,
)
from kinship.domain.tenancy.infrastructure.tenant_repository import TenantRepository

__all__ = [
    "CascadeDeletionResult",
    "CascadeDeletionService",
    "TenantRepository",
    "tenant_owned_classes",
]
