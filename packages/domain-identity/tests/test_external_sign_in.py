"""Unit tests for linking verified external identities to principals."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from kinship.domain.identity import ExternalSignInService
from kinship.domain.identity.exceptions import RegistrationClosedError, UnknownTenantError
from kinship.domain.identity.infrastructure import PrincipalRepository
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.exceptions import InvalidCredentialError, ValidationError
from kinship.foundation.domain.ports import VerifiedExternalIdentity

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session

    from kinship.domain.identity.principal import PrincipalRecord
    from kinship.domain.tenancy.tenant import TenantRecord


def _identity(
    email: str = "ann@smiths.example",
    subject: str = "g-100",
    display_name: str | None = "Ann Smith",
) -> VerifiedExternalIdentity:
    return VerifiedExternalIdentity(
        provider="google",
        subject=subject,
        email=email,
        display_name=display_name,
    )


def _links(session: Session, record_id: object) -> list[tuple[str, str]]:
    with elevated_scope("test"):
        record = PrincipalRepository(session).get(record_id)  # type: ignore[arg-type]
        assert record is not None
        return [(link.provider, link.provider_subject_id) for link in record.external_identities]


class TestCreate:
    """Unknown identity and unknown email: a new restricted member."""

    @pytest.mark.unit
    def test_creates_verified_member_without_password(
        self,
        session: Session,
        smiths: TenantRecord,
    ) -> None:
        record = ExternalSignInService(session).sign_in(_identity(), "smiths.example")
        assert record.tenant_id == smiths.id
        assert record.role == "RESTRICTED_MEMBER"
        assert record.email_verified is True
        assert record.password_hash is None
        assert record.display_name == "Ann Smith"
        assert _links(session, record.id) == [("google", "g-100")]

    @pytest.mark.unit
    def test_display_name_falls_back_to_email(
        self,
        session: Session,
        smiths: TenantRecord,
    ) -> None:
        record = ExternalSignInService(session).sign_in(
            _identity(display_name="  "), "smiths.example"
        )
        assert record.display_name == "ann"

    @pytest.mark.unit
    def test_requires_tenant_domain(self, session: Session, smiths: TenantRecord) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ExternalSignInService(session).sign_in(_identity())
        assert exc_info.value.context["field"] == "tenant_domain"

    @pytest.mark.unit
    def test_unknown_tenant(self, session: Session) -> None:
        with pytest.raises(UnknownTenantError):
            ExternalSignInService(session).sign_in(_identity(), "nobody.example")

    @pytest.mark.unit
    def test_disabled_tenant(self, session: Session, smiths: TenantRecord) -> None:
        with elevated_scope("test"):
            session.merge(smiths).active = False
            session.commit()
        with pytest.raises(RegistrationClosedError):
            ExternalSignInService(session).sign_in(_identity(), "smiths.example")

    @pytest.mark.unit
    def test_rejects_blank_subject(self, session: Session, smiths: TenantRecord) -> None:
        with pytest.raises(ValidationError):
            ExternalSignInService(session).sign_in(_identity(subject=""), "smiths.example")


class TestLink:
    """Known email or known subject."""

    @pytest.mark.unit
    def test_links_existing_email_and_marks_verified(
        self,
        session: Session,
        smiths: TenantRecord,
        seed_principal: Callable[..., PrincipalRecord],
    ) -> None:
        seeded = seed_principal("ann@smiths.example", smiths)
        record = ExternalSignInService(session).sign_in(_identity(email="ANN@smiths.example"))
        assert record.id == seeded.id
        assert record.email_verified is True
        assert record.password_hash == seeded.password_hash
        assert _links(session, seeded.id) == [("google", "g-100")]

    @pytest.mark.unit
    def test_known_subject_ignores_changed_email(
        self,
        session: Session,
        smiths: TenantRecord,
    ) -> None:
        service = ExternalSignInService(session)
        first = service.sign_in(_identity(), "smiths.example")
        again = service.sign_in(_identity(email="renamed@elsewhere.example"))
        assert again.id == first.id
        assert again.email == "ann@smiths.example"

    @pytest.mark.unit
    def test_disabled_principal_cannot_sign_in(
        self,
        session: Session,
        smiths: TenantRecord,
        seed_principal: Callable[..., PrincipalRecord],
    ) -> None:
        seed_principal("ann@smiths.example", smiths, active=False)
        with pytest.raises(InvalidCredentialError):
            ExternalSignInService(session).sign_in(_identity())

    @pytest.mark.unit
    def test_disabled_principal_gets_no_link(
        self,
        session: Session,
        smiths: TenantRecord,
        seed_principal: Callable[..., PrincipalRecord],
    ) -> None:
        seeded = seed_principal("ann@smiths.example", smiths, active=False)
        with pytest.raises(InvalidCredentialError):
            ExternalSignInService(session).sign_in(_identity())
        assert _links(session, seeded.id) == []
        with elevated_scope("test"):
            assert PrincipalRepository(session).find_by_external_identity("google", "g-100") is None

    @pytest.mark.unit
    def test_principal_of_disabled_tenant_gets_no_link(
        self,
        session: Session,
        smiths: TenantRecord,
        seed_principal: Callable[..., PrincipalRecord],
    ) -> None:
        seeded = seed_principal("ann@smiths.example", smiths)
        with elevated_scope("test"):
            session.merge(smiths).active = False
            session.commit()
        with pytest.raises(InvalidCredentialError):
            ExternalSignInService(session).sign_in(_identity())
        assert _links(session, seeded.id) == []
