"""Self-registration, availability checks and password sign-in.

Both flows run before a principal exists, so their lookups use an elevated
scope: email uniqueness is global and a login identifier may belong to any
tenant.

Every sign-in failure (unknown identifier, wrong password, password-less
account, disabled account, disabled tenant) raises the same
``InvalidCredentialError``. The specific reason is only logged.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING, NoReturn
from uuid import uuid4
from weakref import WeakKeyDictionary

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from kinship.domain.identity.exceptions import RegistrationClosedError, UnknownTenantError
from kinship.domain.identity.infrastructure.principal_repository import PrincipalRepository
from kinship.domain.identity.principal import PrincipalRecord
from kinship.domain.tenancy.infrastructure.tenant_repository import TenantRepository
from kinship.domain.tenancy.tenant import TenantRecord
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.exceptions import (
    EmailConflictError,
    InvalidCredentialError,
    UsernameConflictError,
    ValidationError,
)
from kinship.foundation.domain.roles import Role
from kinship.foundation.domain.user_value_objects import DisplayName, Email, Username

if TYPE_CHECKING:
    from datetime import date

    from sqlalchemy.orm import Session

    from kinship.foundation.domain.ports import PasswordHasherPort

logger = logging.getLogger(__name__)


def normalize_email(value: str) -> str:
    try:
        return Email(value).value
    except ValueError as exc:
        raise ValidationError("email", str(exc)) from exc


def normalize_username(value: str) -> str:
    try:
        return Username(value).value
    except ValueError as exc:
        raise ValidationError("username", str(exc)) from exc


def normalize_display_name(value: str) -> str:
    try:
        return DisplayName(value).value
    except ValueError as exc:
        raise ValidationError("display_name", str(exc)) from exc


def signup_tenant(session: Session, domain: str) -> TenantRecord:
    """Tenant a new principal joins, looked up by routing key.

    Raises:
        UnknownTenantError: No tenant uses the domain.
        RegistrationClosedError: The tenant is disabled.
    """
    tenant = TenantRepository(session).find_by_domain(domain)
    if tenant is None:
        raise UnknownTenantError(domain.strip().lower())
    if not tenant.active:
        raise RegistrationClosedError(tenant.domain)
    return tenant


def ensure_can_sign_in(session: Session, record: PrincipalRecord) -> None:
    """Reject disabled principals and principals of disabled tenants.

    Raises:
        InvalidCredentialError: The principal may not sign in.
    """
    if not record.active:
        _reject("account_disabled", principal_id=str(record.id))
    if Role(record.role) is Role.PLATFORM_OWNER:
        return
    tenant = session.get(TenantRecord, record.tenant_id) if record.tenant_id else None
    if tenant is None or not tenant.active:
        _reject("tenant_disabled", principal_id=str(record.id))


_decoy_hashes: WeakKeyDictionary[PasswordHasherPort, str] = WeakKeyDictionary()


def _decoy_hash(hasher: PasswordHasherPort) -> str:
    """A hash of a random secret, made once per hasher at its work factor."""
    decoy = _decoy_hashes.get(hasher)
    if decoy is None:
        decoy = _decoy_hashes[hasher] = hasher.hash(secrets.token_urlsafe(32))
    return decoy


def _reject(reason: str, **context: str) -> NoReturn:
    logger.info("login_failed", extra={"reason": reason, **context})
    raise InvalidCredentialError()


class AccountService:
    """Registration, availability checks and password sign-in.

    Args:
        session: Request-scoped session. The service commits its own writes.
        hasher: Password hasher.
    """

    def __init__(self, session: Session, hasher: PasswordHasherPort) -> None:
        self._session = session
        self._hasher = hasher
        self._principals = PrincipalRepository(session)

    def register(
        self,
        *,
        email: str,
        password: str,
        display_name: str,
        tenant_domain: str,
        username: str | None = None,
        birth_date: date | None = None,
    ) -> PrincipalRecord:
        """Create a restricted member in the tenant named by ``tenant_domain``.

        Raises:
            UnknownTenantError: No tenant uses the domain.
            RegistrationClosedError: The tenant is disabled.
            EmailConflictError: The email is registered anywhere.
            UsernameConflictError: The username is taken in the tenant.
            ValidationError: Malformed email, username or display name.
        """
        email = normalize_email(email)
        display_name = normalize_display_name(display_name)
        username = normalize_username(username) if username else None

        with elevated_scope("registration"):
            tenant = signup_tenant(self._session, tenant_domain)
            if self._principals.find_by_email(email) is not None:
                raise EmailConflictError(email)
            if username and self._principals.find_by_username(username, tenant.id) is not None:
                raise UsernameConflictError(username, tenant.id)

            password_hash = self._hasher.hash(password)
            record = PrincipalRecord(
                id=uuid4(),
                tenant_id=tenant.id,
                email=email,
                username=username,
                password_hash=password_hash,
                display_name=display_name,
                role=Role.RESTRICTED_MEMBER.value,
                birth_date=birth_date,
                active=True,
                email_verified=False,
            )
            self._principals.add(record)
            try:
                self._session.commit()
            except IntegrityError as exc:
                self._session.rollback()
                # Lost a race with a concurrent sign-up.
                if self._principals.find_by_email(email) is not None:
                    raise EmailConflictError(email) from exc
                raise UsernameConflictError(username or "", tenant.id) from exc

        logger.info(
            "principal_registered",
            extra={"principal_id": str(record.id), "tenant_id": str(tenant.id)},
        )
        return record

    def authenticate(
        self,
        identifier: str,
        password: str,
        *,
        tenant_domain: str | None = None,
        client_ip: str | None = None,
    ) -> PrincipalRecord:
        """Check a password sign-in and return the principal.

        Args:
            identifier: Email or username, matched case-insensitively.
            password: Plaintext password.
            tenant_domain: Disambiguates a username used in several tenants.
            client_ip: Recorded as the last sign-in address.

        Raises:
            InvalidCredentialError: For every kind of failure.
        """
        with elevated_scope("login"):
            record = self._match(identifier, tenant_domain)
            stored = record.password_hash if record is not None else None
            # Unknown and password-less identifiers still pay for one verify.
            matched = self._hasher.verify(password, stored or _decoy_hash(self._hasher))
            if record is None:
                _reject("unknown_identifier")
            if record.password_hash is None:
                _reject("no_password", principal_id=str(record.id))
            if not matched:
                _reject("wrong_password", principal_id=str(record.id))
            ensure_can_sign_in(self._session, record)
            logger.info("login_succeeded", extra={"principal_id": str(record.id)})
            self._record_sign_in(record, client_ip)

        return record

    def username_available(self, username: str, tenant_domain: str) -> bool:
        """Whether ``username`` is free in the tenant named by ``tenant_domain``.

        Raises:
            UnknownTenantError: No tenant uses the domain.
            ValidationError: Malformed username.
        """
        username = normalize_username(username)
        with elevated_scope("availability_check"):
            tenant = TenantRepository(self._session).find_by_domain(tenant_domain)
            if tenant is None:
                raise UnknownTenantError(tenant_domain.strip().lower())
            return self._principals.find_by_username(username, tenant.id) is None

    def email_available(self, email: str) -> bool:
        """Whether ``email`` is free. Emails are unique across every tenant."""
        email = normalize_email(email)
        with elevated_scope("availability_check"):
            return self._principals.find_by_email(email) is None

    def _match(self, identifier: str, tenant_domain: str | None) -> PrincipalRecord | None:
        candidates = self._principals.find_by_email_or_username(identifier)
        if not candidates:
            return None
        needle = identifier.strip().lower()
        if candidates[0].email == needle:
            return candidates[0]
        if tenant_domain is not None:
            tenant = TenantRepository(self._session).find_by_domain(tenant_domain)
            candidates = [c for c in candidates if tenant is not None and c.tenant_id == tenant.id]
        # A username shared by several tenants needs a tenant_domain.
        return candidates[0] if len(candidates) == 1 else None

    def _record_sign_in(self, record: PrincipalRecord, client_ip: str | None) -> None:
        record.last_authenticated_at = datetime.now(UTC)
        record.last_authenticated_ip = client_ip
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            logger.warning(
                "login_record_failed",
                extra={"principal_id": str(record.id)},
                exc_info=True,
            )
