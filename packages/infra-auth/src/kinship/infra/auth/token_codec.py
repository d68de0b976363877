"""Session token codec: HS256 JWT issue and verify.

A session token carries a snapshot of the principal (id, email, display
name, role, tenant, birth date) plus ``iat``/``exp``. The snapshot is
advisory: the authentication resolver reloads the principal from storage
on every request and never trusts the embedded role or tenant.

Verification order:
    1. Every segment must be canonical base64url. Flipping one of the
       unused trailing bits of the signature still decodes to the same
       bytes, so without this check some single-bit mutations would
       verify.
    2. Signature (HS256 only; ``none`` and other algorithms are rejected).
    3. Expiry. A tampered token that is also expired is invalid, not expired.
"""

from __future__ import annotations

import binascii
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

import jwt as pyjwt
from jwt.utils import base64url_decode, base64url_encode

from kinship.foundation.domain.roles import Role

if TYPE_CHECKING:
    from collections.abc import Callable

    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


class TokenError(Exception):
    """Base class for session token failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenInvalidError(TokenError):
    """Malformed, unsigned, wrongly signed or tampered token."""


@dataclass(frozen=True, slots=True)
class SessionClaims:
    """Decoded session token payload.

    Attributes:
        principal_id: Principal the token was issued to.
        email: Email at issue time.
        name: Display name at issue time.
        role: Role at issue time (advisory only).
        tenant_id: Tenant at issue time (advisory only).
        birth_date: Birth date at issue time.
        issued_at: ``iat`` as an aware UTC datetime.
        expires_at: ``exp`` as an aware UTC datetime.
    """

    principal_id: UUID
    email: str
    name: str
    role: Role
    tenant_id: UUID | None
    birth_date: date | None
    issued_at: datetime
    expires_at: datetime


def _is_canonical_segment(segment: str) -> bool:
    if not segment or "=" in segment:
        return False
    try:
        return base64url_encode(base64url_decode(segment)) == segment.encode("ascii")
    except (ValueError, UnicodeError, binascii.Error):
        return False


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SessionTokenCodec:
    """Issues and verifies HS256 session tokens with a process-wide secret.

    Args:
        secret: Signing secret. Every process of a deployment must share it.
        algorithm: Signing algorithm. Only this algorithm is accepted on verify.
        default_ttl: Lifetime used when ``issue`` is called without ``ttl``.
        clock: Source of the current time, for tests.

    Example:
        >>> codec = SessionTokenCodec("x" * 32)
        >>> token = codec.issue(principal)
        >>> codec.verify(token).principal_id == principal.principal_id
        True
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._default_ttl = default_ttl
        self._clock = clock

    def issue(self, principal: Principal, ttl: timedelta | None = None) -> str:
        """Sign a session token for ``principal``.

        Args:
            principal: Snapshot to embed.
            ttl: Lifetime. Negative values produce an already expired token.

        Returns:
            Compact JWT string.
        """
        issued_at = self._clock()
        expires_at = issued_at + (ttl if ttl is not None else self._default_ttl)
        payload: dict[str, Any] = {
            "sub": str(principal.principal_id),
            "email": principal.email,
            "name": principal.name,
            "role": str(principal.role),
            "tenant_id": str(principal.tenant_id) if principal.tenant_id else None,
            "birth_date": principal.birth_date.isoformat() if principal.birth_date else None,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return pyjwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> SessionClaims:
        """Verify a session token and decode its claims.

        Raises:
            TokenExpiredError: Valid signature, past expiry.
            TokenInvalidError: Anything else that is wrong with the token.
        """
        segments = token.split(".") if isinstance(token, str) else []
        if len(segments) != 3 or not all(_is_canonical_segment(s) for s in segments):
            raise TokenInvalidError("Token is not a canonical compact JWS")

        try:
            payload = pyjwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except pyjwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired") from exc
        except pyjwt.InvalidTokenError as exc:
            raise TokenInvalidError(str(exc)) from exc

        try:
            return _claims_from_payload(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenInvalidError(f"Token claims are malformed: {exc}") from exc


def _claims_from_payload(payload: dict[str, Any]) -> SessionClaims:
    tenant_id = payload.get("tenant_id")
    birth_date = payload.get("birth_date")
    return SessionClaims(
        principal_id=UUID(str(payload["sub"])),
        email=str(payload.get("email") or ""),
        name=str(payload.get("name") or ""),
        role=Role(payload["role"]),
        tenant_id=UUID(str(tenant_id)) if tenant_id else None,
        birth_date=date.fromisoformat(birth_date) if birth_date else None,
        issued_at=datetime.fromtimestamp(payload["iat"], UTC),
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
    )
