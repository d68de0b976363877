"""Port interface for external identity providers.

The provider handshake (redirects, code exchange, ID token validation) is
owned by an adapter outside this codebase. The core only consumes its
result: a verified external identity plus an email address.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class VerifiedExternalIdentity:
    """Identity asserted by an external provider after a successful handshake.

    Lives only inside the request that completes the handshake and is
    never cached.

    Attributes:
        provider: Provider name (``google``, ``microsoft``, ``apple``).
        subject: Provider-issued subject identifier.
        email: Verified email address.
        display_name: Name reported by the provider, if any.
    """

    provider: str
    subject: str
    email: str
    display_name: str | None = None


@runtime_checkable
class ExternalIdentityVerifierPort(Protocol):
    """Port that completes a provider handshake and returns the identity."""

    async def verify(self, provider: str, code: str) -> VerifiedExternalIdentity:
        """Exchange a provider authorization code for a verified identity.

        Args:
            provider: Provider name.
            code: Authorization code returned by the provider.

        Returns:
            The verified identity.

        Raises:
            InvalidCredentialError: If the provider rejects the code.
        """
        ...
