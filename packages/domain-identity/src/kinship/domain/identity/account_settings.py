"""Self-service changes to the signed-in principal's own account.

The principal is loaded in the request's scope, so these operations never
reach another tenant's rows. Changing the password or the email address
requires the current password.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from kinship.domain.identity.account_service import normalize_display_name, normalize_email
from kinship.domain.identity.infrastructure.principal_repository import PrincipalRepository
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.domain.exceptions import (
    EmailConflictError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

    from kinship.domain.identity.principal import PrincipalRecord
    from kinship.foundation.domain.ports import PasswordHasherPort

logger = logging.getLogger(__name__)


class AccountSettingsService:
    """Password, display name and email changes for one's own account.

    Args:
        session: Request-scoped session. The service commits its own writes.
        hasher: Password hasher.
    """

    def __init__(self, session: Session, hasher: PasswordHasherPort) -> None:
        self._session = session
        self._hasher = hasher
        self._principals = PrincipalRepository(session)

    def change_password(self, principal_id: UUID, current: str, new: str) -> PrincipalRecord:
        """Replace the password after checking the current one.

        Raises:
            NotFoundError: The principal has no record in scope.
            ValidationError: ``current`` is wrong, or ``new`` is too long.
        """
        record = self._own(principal_id)
        self._check_password(record, current)
        record.password_hash = self._hasher.hash(new)
        self._session.commit()
        logger.info("password_changed", extra={"principal_id": str(record.id)})
        return record

    def rename(self, principal_id: UUID, display_name: str) -> PrincipalRecord:
        record = self._own(principal_id)
        record.display_name = normalize_display_name(display_name)
        self._session.commit()
        return record

    def change_email(self, principal_id: UUID, email: str, password: str) -> PrincipalRecord:
        """Move the account to a new email address.

        The new address starts unverified. Emails are unique across all
        tenants.

        Raises:
            NotFoundError: The principal has no record in scope.
            ValidationError: Wrong password or malformed email.
            EmailConflictError: Another principal holds the address.
        """
        record = self._own(principal_id)
        self._check_password(record, password)
        email = normalize_email(email)
        if email == record.email:
            return record

        with elevated_scope("email_change"):
            holder = self._principals.find_by_email(email)
        if holder is not None and holder.id != record.id:
            raise EmailConflictError(email)

        record.email = email
        record.email_verified = False
        try:
            self._session.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent sign-up or change.
            self._session.rollback()
            raise EmailConflictError(email) from exc
        logger.info("email_changed", extra={"principal_id": str(record.id)})
        return record

    def _own(self, principal_id: UUID) -> PrincipalRecord:
        record = self._principals.get(principal_id)
        if record is None:
            raise NotFoundError("Principal", principal_id)
        return record

    def _check_password(self, record: PrincipalRecord, password: str) -> None:
        # An account created through an external provider has no password to confirm.
        if record.password_hash is None or not self._hasher.verify(password, record.password_hash):
            logger.info("password_confirmation_failed", extra={"principal_id": str(record.id)})
            raise ValidationError("current_password", "is incorrect")
