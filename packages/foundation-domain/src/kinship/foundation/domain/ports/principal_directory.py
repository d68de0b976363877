"""Port interface for authoritative principal and tenant lookups.

The authentication resolver reloads principal and tenant state through this
port on every request. Implementations must read from durable storage and
must not cache role or active status between calls.

Example:
    >>> from kinship.foundation.domain.ports import PrincipalDirectoryPort
    >>> def is_enabled(directory: PrincipalDirectoryPort, principal_id) -> bool:
    ...     record = directory.load_principal(principal_id)
    ...     return record is not None and record.active
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import date
    from uuid import UUID


class PrincipalRecordView(Protocol):
    """Read-only view of a stored principal."""

    id: UUID
    email: str
    display_name: str
    role: str
    tenant_id: UUID | None
    birth_date: date | None
    active: bool


class TenantRecordView(Protocol):
    """Read-only view of a stored tenant."""

    id: UUID
    domain: str
    active: bool


@runtime_checkable
class PrincipalDirectoryPort(Protocol):
    """Port for loading principal and tenant state at request time."""

    def load_principal(self, principal_id: UUID) -> PrincipalRecordView | None:
        """Load a principal by id.

        Args:
            principal_id: Identifier carried by the session credential.

        Returns:
            The stored principal, or None if it does not exist.
        """
        ...

    def load_tenant(self, tenant_id: UUID) -> TenantRecordView | None:
        """Load a tenant by id.

        Args:
            tenant_id: Tenant identifier.

        Returns:
            The stored tenant, or None if it does not exist.
        """
        ...

    def record_authentication(self, principal_id: UUID, client_ip: str | None) -> None:
        """Record the time and source address of a successful authentication.

        Callers treat this as best-effort and never let a failure here
        change the authentication outcome.
        """
        ...
