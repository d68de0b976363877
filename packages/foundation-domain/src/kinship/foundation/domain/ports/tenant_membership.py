"""Port interface for tenant membership queries used by tenant administration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID


@runtime_checkable
class TenantMembershipPort(Protocol):
    """Port for counting the principals that keep a tenant alive."""

    def count_active_principals(self, tenant_id: UUID, *, session: Any | None = None) -> int:
        """Return the number of active principals belonging to the tenant.

        Args:
            tenant_id: Tenant to count.
            session: Unit of work to count in, so the answer holds for the
                caller's transaction. Adapters open their own when omitted.
        """
        ...
