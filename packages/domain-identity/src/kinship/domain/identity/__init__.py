"""Kinship Domain Identity -- principals, sign-up, sign-in and principal management."""

from kinship.domain.identity.account_service import AccountService
from kinship.domain.identity.account_settings import AccountSettingsService
from kinship.domain.identity.external_sign_in import ExternalSignInService
from kinship.domain.identity.principal import ExternalIdentityLink, PrincipalRecord
from kinship.domain.identity.principal_service import PrincipalAdministrationService

__all__ = [
    "AccountService",
    "AccountSettingsService",
    "ExternalIdentityLink",
    "ExternalSignInService",
    "PrincipalAdministrationService",
    "PrincipalRecord",
]
