"""Repository for principal records and their external identity links.

Principals are tenant-owned, so every query here is filtered by the
tenant-scoping enforcer: under a tenant-pinned scope a principal of
another tenant loads as None. Lookups that must cross tenants (login,
sign-up uniqueness, external identity linking) run under an elevated
scope chosen by the calling service.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from kinship.domain.identity.principal import ExternalIdentityLink, PrincipalRecord

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class PrincipalRepository:
    """Read/write access to ``principals`` and ``external_identities``.

    The repository never commits; the owning service does.

    Args:
        session: Request-scoped SQLAlchemy session.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, principal_id: UUID) -> PrincipalRecord | None:
        """Load a principal by id, or None if missing or outside the scope."""
        stmt = select(PrincipalRecord).where(PrincipalRecord.id == principal_id)
        return self._session.scalars(stmt).one_or_none()

    def find_by_email(self, email: str) -> PrincipalRecord | None:
        stmt = select(PrincipalRecord).where(PrincipalRecord.email == email.strip().lower())
        return self._session.scalars(stmt).one_or_none()

    def find_by_username(self, username: str, tenant_id: UUID) -> PrincipalRecord | None:
        stmt = select(PrincipalRecord).where(
            PrincipalRecord.tenant_id == tenant_id,
            PrincipalRecord.username == username.strip().lower(),
        )
        return self._session.scalars(stmt).one_or_none()

    def find_by_email_or_username(self, identifier: str) -> list[PrincipalRecord]:
        """All principals whose email or username matches ``identifier``.

        Matching is case-insensitive. An email match is listed first. More
        than one row is possible because usernames are only unique within
        a tenant.
        """
        needle = identifier.strip().lower()
        stmt = select(PrincipalRecord).where(
            or_(PrincipalRecord.email == needle, PrincipalRecord.username == needle)
        )
        matches = list(self._session.scalars(stmt))
        matches.sort(key=lambda record: record.email != needle)
        return matches

    def find_by_external_identity(self, provider: str, subject: str) -> PrincipalRecord | None:
        """Principal linked to ``(provider, subject)``, or None."""
        stmt = (
            select(PrincipalRecord)
            .join(ExternalIdentityLink, ExternalIdentityLink.principal_id == PrincipalRecord.id)
            .where(
                ExternalIdentityLink.provider == provider,
                ExternalIdentityLink.provider_subject_id == subject,
            )
        )
        return self._session.scalars(stmt).one_or_none()

    def link_external_identity(
        self,
        principal: PrincipalRecord,
        provider: str,
        subject: str,
    ) -> ExternalIdentityLink:
        link = ExternalIdentityLink(provider=provider, provider_subject_id=subject)
        principal.external_identities.append(link)
        logger.info(
            "external_identity_linked",
            extra={"principal_id": str(principal.id), "provider": provider},
        )
        return link

    def count_active(self, tenant_id: UUID) -> int:
        """Number of active principals of a tenant."""
        stmt = (
            select(func.count(PrincipalRecord.id))
            .where(PrincipalRecord.tenant_id == tenant_id, PrincipalRecord.active.is_(True))
        )
        return self._session.scalar(stmt) or 0

    def list_page(self, offset: int, limit: int) -> tuple[list[PrincipalRecord], int]:
        """One page of the principals visible in the scope, newest first.

        Returns:
            Tuple of (principals on the page, total visible principals).
        """
        total = self._session.scalar(select(func.count(PrincipalRecord.id))) or 0
        stmt = (
            select(PrincipalRecord)
            .order_by(PrincipalRecord.created_at.desc(), PrincipalRecord.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self._session.scalars(stmt)), total

    def add(self, principal: PrincipalRecord) -> None:
        self._session.add(principal)
