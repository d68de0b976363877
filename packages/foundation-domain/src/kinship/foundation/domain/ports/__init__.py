"""Domain port interfaces for hexagonal architecture.

Ports define abstract interfaces that the domain and application layers use
to interact with storage and external services. Implementations (adapters)
live in infrastructure and domain packages.
"""

from kinship.foundation.domain.ports.external_identity import (
    ExternalIdentityVerifierPort,
    VerifiedExternalIdentity,
)
from kinship.foundation.domain.ports.password_hasher import PasswordHasherPort
from kinship.foundation.domain.ports.payment_gateway import PaymentGatewayPort
from kinship.foundation.domain.ports.principal_directory import (
    PrincipalDirectoryPort,
    PrincipalRecordView,
    TenantRecordView,
)
from kinship.foundation.domain.ports.tenant_membership import TenantMembershipPort

__all__ = [
    "ExternalIdentityVerifierPort",
    "PasswordHasherPort",
    "PaymentGatewayPort",
    "PrincipalDirectoryPort",
    "PrincipalRecordView",
    "TenantMembershipPort",
    "TenantRecordView",
    "VerifiedExternalIdentity",
]
