"""Kinship Infra Auth -- session tokens, credential resolution, auth middleware.

Provides the HS256 session token codec, the bypass credential, the
authentication resolver, bcrypt password hashing, correlation stores for
external sign-in, the session auth middleware and FastAPI dependencies.
"""

from kinship.infra.auth.bypass import BypassCredential, resolve_bypass
from kinship.infra.auth.correlation import (
    CorrelationStore,
    InMemoryCorrelationStore,
    PendingFlow,
    RedisCorrelationStore,
)
from kinship.infra.auth.credentials import extract_credential
from kinship.infra.auth.dependencies import (
    CurrentPrincipal,
    CurrentTenantScope,
    TargetTenantId,
    get_current_principal,
    require_action,
)
from kinship.infra.auth.lifespan import lifespan_contribution
from kinship.infra.auth.middleware.session_auth import SessionAuthMiddleware
from kinship.infra.auth.passwords import BcryptPasswordHasher
from kinship.infra.auth.resolver import AuthenticationResolver
from kinship.infra.auth.settings import AuthSettings, get_auth_settings
from kinship.infra.auth.token_codec import (
    SessionClaims,
    SessionTokenCodec,
    TokenExpiredError,
    TokenInvalidError,
)

__all__ = [
    "AuthSettings",
    "AuthenticationResolver",
    "BcryptPasswordHasher",
    "BypassCredential",
    "CorrelationStore",
    "CurrentPrincipal",
    "CurrentTenantScope",
    "InMemoryCorrelationStore",
    "PendingFlow",
    "RedisCorrelationStore",
    "SessionAuthMiddleware",
    "SessionClaims",
    "SessionTokenCodec",
    "TargetTenantId",
    "TokenExpiredError",
    "TokenInvalidError",
    "extract_credential",
    "get_auth_settings",
    "get_current_principal",
    "lifespan_contribution",
    "require_action",
    "resolve_bypass",
]
