"""Port interface for payment gateway calls.

Gateway SDKs live outside the core. Every call through this port must be
preceded by a successful ``billing:*`` authorization check.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID


@runtime_checkable
class PaymentGatewayPort(Protocol):
    """Port for starting a payment with an external gateway."""

    def create_payment_intent(
        self,
        *,
        tenant_id: UUID,
        principal_id: UUID,
        amount_cents: int,
        currency: str,
        description: str,
    ) -> str:
        """Start a payment and return the gateway's payment reference."""
        ...
