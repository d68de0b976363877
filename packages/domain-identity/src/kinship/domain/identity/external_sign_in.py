"""Links a verified external identity to a principal, creating one if needed.

Orchestrates the sign-in flow after a provider handshake:
1. Fast-path: the (provider, subject) pair is already linked.
2. Email match: link the pair to the principal holding the verified email,
   provided that principal may sign in.
3. Slow-path: create a restricted member in the tenant named by the
   correlation entry's routing key, with a verified email and no password.
4. Race handling: a concurrent sign-in that creates the same link first
   wins; the loser re-reads the link.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from kinship.domain.identity.account_service import (
    ensure_can_sign_in,
    normalize_display_name,
    normalize_email,
    signup_tenant,
)
from kinship.domain.identity.infrastructure.principal_repository import PrincipalRepository
from kinship.domain.identity.principal import PrincipalRecord
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.exceptions import ConflictError, ValidationError
from kinship.foundation.domain.roles import Role
from kinship.foundation.domain.user_value_objects import ProviderSubject

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from kinship.foundation.domain.ports import VerifiedExternalIdentity

logger = logging.getLogger(__name__)


def _display_name(identity: VerifiedExternalIdentity, email: str) -> str:
    if identity.display_name and identity.display_name.strip():
        return normalize_display_name(identity.display_name)
    return email.split("@", 1)[0] or "Member"


class ExternalSignInService:
    """Resolves a verified external identity to a principal that may sign in.

    Args:
        session: Request-scoped session. The service commits its own writes.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._principals = PrincipalRepository(session)

    def sign_in(
        self,
        identity: VerifiedExternalIdentity,
        tenant_domain: str | None = None,
    ) -> PrincipalRecord:
        """Link or create, then check the principal may sign in.

        Args:
            identity: Result of the provider handshake.
            tenant_domain: Routing key of the tenant a new principal joins.

        Returns:
            The linked principal.

        Raises:
            ValidationError: A new principal is needed but no tenant was named.
            UnknownTenantError: The named tenant does not exist.
            RegistrationClosedError: The named tenant is disabled.
            InvalidCredentialError: The linked principal or its tenant is disabled.
        """
        try:
            subject = ProviderSubject(identity.subject).value
        except ValueError as exc:
            raise ValidationError("subject", str(exc)) from exc
        email = normalize_email(identity.email)

        with elevated_scope("external_identity_link"):
            record = self._link(identity.provider, subject, email, identity, tenant_domain)
            ensure_can_sign_in(self._session, record)
        return record

    def _link(
        self,
        provider: str,
        subject: str,
        email: str,
        identity: VerifiedExternalIdentity,
        tenant_domain: str | None,
    ) -> PrincipalRecord:
        # 1. Fast-path: already linked
        existing = self._principals.find_by_external_identity(provider, subject)
        if existing is not None:
            logger.debug(
                "external_identity_known",
                extra={"principal_id": str(existing.id), "provider": provider},
            )
            return existing

        # 2. Link to the principal holding the verified email
        by_email = self._principals.find_by_email(email)
        if by_email is not None:
            # A principal that may not sign in gets no new link.
            ensure_can_sign_in(self._session, by_email)
            self._principals.link_external_identity(by_email, provider, subject)
            by_email.email_verified = True
            return self._commit(by_email, provider, subject)

        # 3. Create a restricted member in the named tenant
        if not tenant_domain:
            raise ValidationError(
                "tenant_domain",
                "A family domain is required to create an account",
            )
        tenant = signup_tenant(self._session, tenant_domain)
        record = PrincipalRecord(
            id=uuid4(),
            tenant_id=tenant.id,
            email=email,
            password_hash=None,
            display_name=_display_name(identity, email),
            role=Role.RESTRICTED_MEMBER.value,
            active=True,
            email_verified=True,
        )
        self._principals.add(record)
        self._principals.link_external_identity(record, provider, subject)
        record = self._commit(record, provider, subject)
        logger.info(
            "principal_provisioned_from_external_identity",
            extra={
                "principal_id": str(record.id),
                "tenant_id": str(tenant.id),
                "provider": provider,
            },
        )
        return record

    def _commit(self, record: PrincipalRecord, provider: str, subject: str) -> PrincipalRecord:
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            # 4. A concurrent sign-in created the link or the principal first.
            logger.warning(
                "external_identity_link_race",
                extra={"provider": provider},
            )
            winner = self._principals.find_by_external_identity(provider, subject)
            if winner is None:
                raise ConflictError(
                    "External identity could not be linked",
                    provider=provider,
                ) from exc
            return winner
        return record
