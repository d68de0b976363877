"""Operational bypass credential.

A configured literal that authenticates as a synthetic platform owner with
no tenant. It exists for operators and smoke tests and is therefore
fenced in:

1. Production lockout: ``ENVIRONMENT=production`` always disables it.
2. Opt-in only: ``AUTH_BYPASS_ENABLED=true`` is required.
3. Constant-time comparison against the configured literal.
4. Every accepted use is logged as ``auth_bypass_used`` at WARNING.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING
from uuid import UUID

from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role

if TYPE_CHECKING:
    from kinship.infra.auth.settings import AuthSettings

logger = logging.getLogger(__name__)

BYPASS_PRINCIPAL_ID = UUID(int=0)
BYPASS_EMAIL = "bypass@system.local"
BYPASS_NAME = "System Operator"


def resolve_bypass(requested: bool, environment: str) -> bool:
    """Resolve whether the bypass credential should be accepted.

    Args:
        requested: Whether bypass was requested via AUTH_BYPASS_ENABLED=true.
        environment: Current ENVIRONMENT value.

    Returns:
        True if bypass should be active, False otherwise.

    Side effects:
        - Logs WARNING when bypass is active in non-production environment.
        - Logs ERROR when bypass is requested but blocked in production.
    """
    if not requested:
        return False

    if environment == "production":
        logger.error(
            "auth_bypass_blocked",
            extra={
                "environment": environment,
                "detail": "Bypass credential was requested but blocked in production.",
            },
        )
        return False

    logger.warning(
        "auth_bypass_active",
        extra={
            "environment": environment,
            "detail": "Bypass credential is accepted. Do not use in production.",
        },
    )
    return True


class BypassCredential:
    """Matches the bypass literal and produces the synthetic principal."""

    def __init__(self, literal: str) -> None:
        self._literal = literal.encode("utf-8")

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> BypassCredential | None:
        """Build the bypass matcher, or None when bypass is not active."""
        if not resolve_bypass(settings.bypass_enabled, settings.environment):
            return None
        return cls(settings.bypass_token)

    def matches(self, credential: str) -> bool:
        return hmac.compare_digest(credential.encode("utf-8"), self._literal)

    def principal(self, client_ip: str | None = None) -> Principal:
        """Return the synthetic platform owner and log the use."""
        logger.warning("auth_bypass_used", extra={"client_ip": client_ip})
        return Principal(
            principal_id=BYPASS_PRINCIPAL_ID,
            email=BYPASS_EMAIL,
            name=BYPASS_NAME,
            role=Role.PLATFORM_OWNER,
            tenant_id=None,
            via_bypass=True,
        )
