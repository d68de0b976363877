"""Kinship Foundation Domain -- pure Python domain primitives.

This package provides the foundational building blocks for the multi-tenant
authorization core: exceptions, roles, the principal context, the static
capability table, value objects, and port interfaces.
"""

from kinship.foundation.domain.capabilities import (
    ADULT_AGE,
    ASSUME_ADULT_WHEN_BIRTH_DATE_MISSING,
    CAPABILITY_TABLE,
    PAGE_ACTIONS,
    Action,
    calendar_age,
    family_of,
    is_adult,
    is_billing_action,
)
from kinship.foundation.domain.exceptions import (
    AccountDisabledError,
    AgeRestrictedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainConflictError,
    DomainError,
    EmailConflictError,
    InvalidCredentialError,
    NoTenantContextError,
    NotFoundError,
    RoleNotPermittedError,
    SessionExpiredError,
    TenantDisabledError,
    TenantMismatchError,
    UnknownActionError,
    UsernameConflictError,
    ValidationError,
)
from kinship.foundation.domain.ports import (
    ExternalIdentityVerifierPort,
    PasswordHasherPort,
    PaymentGatewayPort,
    PrincipalDirectoryPort,
    PrincipalRecordView,
    TenantMembershipPort,
    TenantRecordView,
    VerifiedExternalIdentity,
)
from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import ROLE_RANK, Role, ensure_role_tenant_invariant
from kinship.foundation.domain.tenant_value_objects import TenantDomain, TenantName
from kinship.foundation.domain.user_value_objects import (
    DisplayName,
    Email,
    ExternalProvider,
    ProviderSubject,
    Username,
)

__all__ = [
    "ADULT_AGE",
    "ASSUME_ADULT_WHEN_BIRTH_DATE_MISSING",
    "CAPABILITY_TABLE",
    "PAGE_ACTIONS",
    "ROLE_RANK",
    "AccountDisabledError",
    "Action",
    "AgeRestrictedError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DisplayName",
    "DomainConflictError",
    "DomainError",
    "Email",
    "EmailConflictError",
    "ExternalIdentityVerifierPort",
    "ExternalProvider",
    "InvalidCredentialError",
    "NoTenantContextError",
    "NotFoundError",
    "PasswordHasherPort",
    "PaymentGatewayPort",
    "Principal",
    "PrincipalDirectoryPort",
    "PrincipalRecordView",
    "ProviderSubject",
    "Role",
    "RoleNotPermittedError",
    "SessionExpiredError",
    "TenantDisabledError",
    "TenantDomain",
    "TenantMembershipPort",
    "TenantMismatchError",
    "TenantName",
    "TenantRecordView",
    "UnknownActionError",
    "Username",
    "UsernameConflictError",
    "ValidationError",
    "VerifiedExternalIdentity",
    "calendar_age",
    "ensure_role_tenant_invariant",
    "family_of",
    "is_adult",
    "is_billing_action",
]
