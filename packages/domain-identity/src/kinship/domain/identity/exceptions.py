"""Errors specific to sign-up and principal administration."""

from __future__ import annotations

from kinship.foundation.domain.exceptions import AuthorizationError, DomainError


class UnknownTenantError(DomainError):
    """No tenant answers to the routing key given at sign-up (HTTP 400)."""

    error_code: str = "UNKNOWN_TENANT"

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__("No family account uses this domain", {"domain": domain})


class RegistrationClosedError(AuthorizationError):
    """Sign-up into a disabled tenant (HTTP 403)."""

    error_code: str = "TENANT_DISABLED"

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__("Registration is disabled for this family account", {"domain": domain})


class RoleGrantNotPermittedError(AuthorizationError):
    """The caller tried to assign a role above what it may grant."""

    error_code: str = "ROLE_GRANT_NOT_PERMITTED"

    def __init__(self, granted_role: str, actor_role: str) -> None:
        self.granted_role = granted_role
        self.actor_role = actor_role
        super().__init__(
            f"Role {actor_role} may not grant {granted_role}",
            {"granted_role": granted_role, "actor_role": actor_role},
        )
