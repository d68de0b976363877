"""Authentication resolver: credential in, freshly loaded Principal out.

Resolution steps:
    1. Bypass literal (when active) -> synthetic platform owner.
    2. Token verify: expired -> SessionExpiredError, otherwise invalid ->
       InvalidCredentialError.
    3. Reload the principal by id; missing or inactive -> AccountDisabledError.
    4. Non-platform principal: reload its tenant; missing or inactive ->
       TenantDisabledError.
    5. Build a new Principal from the stored records only.

Nothing is cached between calls: disabling an account or tenant takes
effect on the next request. Recording the authentication time is
best-effort and can never change the outcome.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.exceptions import (
    AccountDisabledError,
    InvalidCredentialError,
    SessionExpiredError,
    TenantDisabledError,
)
from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role
from kinship.infra.auth.token_codec import TokenExpiredError, TokenInvalidError

if TYPE_CHECKING:
    from kinship.foundation.domain.ports.principal_directory import PrincipalDirectoryPort
    from kinship.infra.auth.bypass import BypassCredential
    from kinship.infra.auth.token_codec import SessionTokenCodec

logger = logging.getLogger(__name__)


class AuthenticationResolver:
    """Turns a raw credential into an authenticated Principal.

    Synchronous: the directory reads from the database. The auth middleware
    calls it through the threadpool.

    Args:
        codec: Session token codec.
        directory: Authoritative principal/tenant lookups.
        bypass: Bypass matcher, or None when bypass is disabled.
    """

    def __init__(
        self,
        codec: SessionTokenCodec,
        directory: PrincipalDirectoryPort,
        bypass: BypassCredential | None = None,
    ) -> None:
        self._codec = codec
        self._directory = directory
        self._bypass = bypass

    def resolve(self, credential: str, client_ip: str | None = None) -> Principal:
        """Resolve ``credential`` to a Principal.

        Raises:
            InvalidCredentialError: Malformed, unsigned or tampered credential.
            SessionExpiredError: Valid credential past its expiry.
            AccountDisabledError: Principal missing or inactive.
            TenantDisabledError: Tenant of a non-platform principal missing or inactive.
        """
        if self._bypass is not None and self._bypass.matches(credential):
            return self._bypass.principal(client_ip)

        try:
            claims = self._codec.verify(credential)
        except TokenExpiredError as exc:
            raise SessionExpiredError() from exc
        except TokenInvalidError as exc:
            raise InvalidCredentialError() from exc

        with elevated_scope("authentication"):
            record = self._directory.load_principal(claims.principal_id)
            if record is None or not record.active:
                logger.info(
                    "authentication_account_disabled",
                    extra={"principal_id": str(claims.principal_id), "found": record is not None},
                )
                raise AccountDisabledError()

            role = Role(record.role)
            if role is not Role.PLATFORM_OWNER:
                tenant = (
                    self._directory.load_tenant(record.tenant_id)
                    if record.tenant_id is not None
                    else None
                )
                if tenant is None or not tenant.active:
                    logger.info(
                        "authentication_tenant_disabled",
                        extra={
                            "principal_id": str(record.id),
                            "tenant_id": str(record.tenant_id),
                        },
                    )
                    raise TenantDisabledError()

            principal = Principal(
                principal_id=record.id,
                email=record.email,
                name=record.display_name,
                role=role,
                tenant_id=record.tenant_id,
                birth_date=record.birth_date,
            )
            self._record_authentication(principal, client_ip)

        return principal

    def _record_authentication(self, principal: Principal, client_ip: str | None) -> None:
        try:
            self._directory.record_authentication(principal.principal_id, client_ip)
        except Exception:
            logger.warning(
                "authentication_record_failed",
                extra={"principal_id": str(principal.principal_id)},
                exc_info=True,
            )
