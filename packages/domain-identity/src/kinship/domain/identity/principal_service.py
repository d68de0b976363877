"""Principal administration within the caller's scope.

Reads and writes go through the tenant-scoping enforcer, so a tenant owner
only ever sees and changes principals of their own tenant; a principal of
another tenant is simply not found.

Role grant rules:
    - Only platform owners may grant ``PLATFORM_OWNER``.
    - Other principals may not grant a role ranked above their own, and may
      not manage a principal ranked above them.
    - The role/tenant invariant holds after every change, so a tenant
      member cannot be promoted to platform owner in place.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from kinship.domain.identity.account_service import (
    normalize_display_name,
    normalize_email,
    normalize_username,
)
from kinship.domain.identity.exceptions import RoleGrantNotPermittedError
from kinship.domain.identity.infrastructure.principal_repository import PrincipalRepository
from kinship.domain.identity.principal import PrincipalRecord
from kinship.domain.tenancy.tenant import TenantRecord
from kinship.foundation.application.context import elevated_scope
from kinship.foundation.application.tenant_scope import require_tenant_context
from kinship.foundation.domain.exceptions import (
    ConflictError,
    EmailConflictError,
    NotFoundError,
    UsernameConflictError,
    ValidationError,
)
from kinship.foundation.domain.roles import ROLE_RANK, Role, ensure_role_tenant_invariant

if TYPE_CHECKING:
    from datetime import date
    from uuid import UUID

    from sqlalchemy.orm import Session

    from kinship.foundation.domain.ports import PasswordHasherPort
    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class PrincipalPage:
    """One page of principals."""

    items: list[PrincipalRecord]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def ensure_can_grant(actor: Principal, role: Role) -> None:
    """Raise unless ``actor`` may assign ``role``.

    Raises:
        RoleGrantNotPermittedError: The role is above what the actor may grant.
    """
    if actor.is_platform_owner:
        return
    if role is Role.PLATFORM_OWNER or ROLE_RANK[role] > ROLE_RANK[actor.role]:
        raise RoleGrantNotPermittedError(role.value, str(actor.role))


def ensure_can_manage(actor: Principal, record: PrincipalRecord) -> None:
    """Raise unless ``actor`` outranks or equals the managed principal."""
    if actor.is_platform_owner:
        return
    if ROLE_RANK[Role(record.role)] > ROLE_RANK[actor.role]:
        raise RoleGrantNotPermittedError(record.role, str(actor.role))


def _role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError as exc:
        raise ValidationError("role", f"Unknown role '{value}'") from exc


class PrincipalAdministrationService:
    """List, create, update and disable principals.

    Args:
        session: Request-scoped session. The service commits its own writes.
        hasher: Password hasher for administrator-set passwords.
    """

    def __init__(self, session: Session, hasher: PasswordHasherPort) -> None:
        self._session = session
        self._hasher = hasher
        self._principals = PrincipalRepository(session)

    def list_principals(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> PrincipalPage:
        """Principals visible in the current scope, newest first."""
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        page = max(1, page)
        items, total = self._principals.list_page((page - 1) * page_size, page_size)
        return PrincipalPage(items=items, page=page, page_size=page_size, total=total)

    def get(self, principal_id: UUID) -> PrincipalRecord:
        record = self._principals.get(principal_id)
        if record is None:
            raise NotFoundError("Principal", principal_id)
        return record

    def create(
        self,
        actor: Principal,
        *,
        email: str,
        display_name: str,
        role: Role | str = Role.RESTRICTED_MEMBER,
        password: str | None = None,
        username: str | None = None,
        birth_date: date | None = None,
        tenant_id: UUID | None = None,
    ) -> PrincipalRecord:
        """Create a principal.

        Tenant members always create into their own tenant. Platform owners
        name the tenant with ``tenant_id`` or through the selected target
        tenant; a new platform owner gets no tenant.

        Raises:
            RoleGrantNotPermittedError: The actor may not grant ``role``.
            NoTenantContextError: A platform owner named no tenant for a member.
            NotFoundError: The named tenant does not exist.
            EmailConflictError: The email is registered anywhere.
            UsernameConflictError: The username is taken in the tenant.
        """
        role = _role(role)
        ensure_can_grant(actor, role)

        owner_tenant: UUID | None
        if role is Role.PLATFORM_OWNER:
            owner_tenant = None
        elif actor.is_platform_owner:
            owner_tenant = tenant_id or require_tenant_context(actor)
        else:
            owner_tenant = actor.tenant_id
        ensure_role_tenant_invariant(role, owner_tenant)

        email = normalize_email(email)
        display_name = normalize_display_name(display_name)
        username = normalize_username(username) if username else None

        with elevated_scope("principal_uniqueness"):
            if owner_tenant is not None and self._session.get(TenantRecord, owner_tenant) is None:
                raise NotFoundError("Tenant", owner_tenant)
            self._check_unique(email, username, owner_tenant)

        record = PrincipalRecord(
            id=uuid4(),
            tenant_id=owner_tenant,
            email=email,
            username=username,
            password_hash=self._hasher.hash(password) if password else None,
            display_name=display_name,
            role=role.value,
            birth_date=birth_date,
            active=True,
        )
        self._principals.add(record)
        if owner_tenant is None:
            # Platform owner rows carry no tenant and would be stamped with
            # the caller's target tenant under a pinned scope.
            with elevated_scope("platform_owner_creation"):
                self._commit()
        else:
            self._commit()

        logger.info(
            "principal_created",
            extra={
                "principal_id": str(record.id),
                "role": role.value,
                "tenant_id": str(owner_tenant),
                "actor_id": str(actor.principal_id),
            },
        )
        return record

    def update(
        self,
        actor: Principal,
        principal_id: UUID,
        *,
        email: str | None = None,
        display_name: str | None = None,
        username: str | None = None,
        role: Role | str | None = None,
        birth_date: date | None = None,
        active: bool | None = None,
        password: str | None = None,
    ) -> PrincipalRecord:
        """Apply the given changes to a principal in scope.

        Raises:
            NotFoundError: No such principal in the caller's scope.
            RoleGrantNotPermittedError: Role change or target above the actor.
            ValidationError: Self-demotion, self-disable or a role/tenant mismatch.
        """
        record = self.get(principal_id)
        ensure_can_manage(actor, record)
        is_self = record.id == actor.principal_id

        if role is not None:
            new_role = _role(role)
            if new_role.value != record.role:
                if is_self:
                    raise ValidationError("role", "You cannot change your own role")
                ensure_can_grant(actor, new_role)
                ensure_role_tenant_invariant(new_role, record.tenant_id)
                record.role = new_role.value
        if active is not None and active != record.active:
            if is_self and not active:
                raise ValidationError("active", "You cannot disable your own account")
            record.active = active
        if display_name is not None:
            record.display_name = normalize_display_name(display_name)
        if birth_date is not None:
            record.birth_date = birth_date
        if password:
            record.password_hash = self._hasher.hash(password)

        new_email = normalize_email(email) if email is not None else record.email
        new_username = normalize_username(username) if username else record.username
        if new_email != record.email or new_username != record.username:
            with elevated_scope("principal_uniqueness"):
                self._check_unique(
                    new_email if new_email != record.email else None,
                    new_username if new_username != record.username else None,
                    record.tenant_id,
                )
            record.email = new_email
            record.username = new_username

        self._commit()
        logger.info(
            "principal_updated",
            extra={"principal_id": str(record.id), "actor_id": str(actor.principal_id)},
        )
        return record

    def disable(self, actor: Principal, principal_id: UUID) -> PrincipalRecord:
        """Soft-disable a principal. It fails authentication from the next request."""
        return self.update(actor, principal_id, active=False)

    def _check_unique(
        self,
        email: str | None,
        username: str | None,
        tenant_id: UUID | None,
    ) -> None:
        if email is not None and self._principals.find_by_email(email) is not None:
            raise EmailConflictError(email)
        if (
            username is not None
            and tenant_id is not None
            and self._principals.find_by_username(username, tenant_id) is not None
        ):
            raise UsernameConflictError(username, tenant_id)

    def _commit(self) -> None:
        try:
            self._session.commit()
        except IntegrityError as exc:
            # Lost a uniqueness race after the checks above passed.
            self._session.rollback()
            raise ConflictError("Principal conflicts with an existing record") from exc
