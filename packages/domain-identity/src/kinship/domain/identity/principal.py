"""Principal and external identity link records.

A principal is one person who can sign in. Every principal except a
platform owner belongs to exactly one tenant; the role/tenant invariant is
checked whenever a record is created or its role changes.

Email is globally unique and username is unique within a tenant. Both are
stored lowercased so the unique indexes also enforce case-insensitive
uniqueness.
"""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003 -- SQLAlchemy resolves Mapped[] at runtime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kinship.domain.tenancy.tenant import TenantRecord  # noqa: F401 -- registers "tenants"
from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role
from kinship.infra.persistence.orm import Base, TenantOwnedMixin, TimestampMixin


class PrincipalRecord(TenantOwnedMixin, TimestampMixin, Base):
    """Row of the ``principals`` table.

    Platform owners have no tenant, so ``tenant_id`` is nullable. Under a
    tenant-pinned scope they are invisible like any other foreign row.

    Attributes:
        id: Principal identifier carried by session tokens.
        email: Globally unique, lowercased login email.
        username: Optional lowercased login name, unique within the tenant.
        password_hash: bcrypt hash. None for accounts created by external sign-in.
        display_name: Name shown in the UI.
        role: One of the :class:`Role` values.
        birth_date: Used by the billing age gate.
        active: False blocks authentication from the next request.
        email_verified: True once an external provider or a verification
            step has confirmed the address.
        last_authenticated_at: Time of the last successful authentication.
        last_authenticated_ip: Source address of the last successful authentication.
    """

    __tablename__ = "principals"
    __tenant_nullable__ = True
    __table_args__ = (
        UniqueConstraint("tenant_id", "username", name="uq_principals_tenant_username"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str | None] = mapped_column(String(50), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(32), default=Role.RESTRICTED_MEMBER.value)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    last_authenticated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_authenticated_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)

    external_identities: Mapped[list[ExternalIdentityLink]] = relationship(
        back_populates="principal",
        cascade="all, delete-orphan",
    )

    def to_principal(self) -> Principal:
        """Build the authenticated Principal from this stored record."""
        return Principal(
            principal_id=self.id,
            email=self.email,
            name=self.display_name,
            role=Role(self.role),
            tenant_id=self.tenant_id,
            birth_date=self.birth_date,
        )

    def __repr__(self) -> str:
        return (
            f"PrincipalRecord(id={self.id!s}, email={self.email!r}, "
            f"role={self.role}, tenant_id={self.tenant_id!s})"
        )


class ExternalIdentityLink(Base):
    """Row of the ``external_identities`` table.

    Links a provider subject to a principal. Not tenant-owned: links are
    only reached through their principal, and deleting a principal deletes
    its links.
    """

    __tablename__ = "external_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_subject_id", name="uq_external_identities_subject"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    principal_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("principals.id", ondelete="CASCADE"),
        index=True,
    )
    provider: Mapped[str] = mapped_column(String(32))
    provider_subject_id: Mapped[str] = mapped_column(String(255))

    principal: Mapped[PrincipalRecord] = relationship(back_populates="external_identities")
