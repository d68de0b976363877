"""Tests for the session token codec."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime, timedelta
from uuid import UUID

import jwt as pyjwt
import pytest
from jwt.utils import base64url_encode

from kinship.foundation.domain.principal import Principal
from kinship.foundation.domain.roles import Role
from kinship.infra.auth.token_codec import (
    SessionTokenCodec,
    TokenExpiredError,
    TokenInvalidError,
)

_SECRET = "k" * 48
_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
_TENANT = UUID("aaaaaaaa-0000-0000-0000-000000000001")


def _member() -> Principal:
    return Principal(
        principal_id=UUID("11111111-1111-1111-1111-111111111111"),
        email="kid@family.test",
        name="Kid",
        role=Role.RESTRICTED_MEMBER,
        tenant_id=_TENANT,
        birth_date=date(2012, 5, 1),
    )


def _mutate(token: str, index: int) -> str:
    current = token[index]
    replacement = _ALPHABET[(_ALPHABET.index(current) + 1) % len(_ALPHABET)]
    return token[:index] + replacement + token[index + 1 :]


@pytest.mark.unit
class TestIssueVerify:
    """Round trip of the principal snapshot."""

    def test_claims_round_trip(self) -> None:
        codec = SessionTokenCodec(_SECRET)
        claims = codec.verify(codec.issue(_member()))
        assert claims.principal_id == _member().principal_id
        assert claims.email == "kid@family.test"
        assert claims.name == "Kid"
        assert claims.role is Role.RESTRICTED_MEMBER
        assert claims.tenant_id == _TENANT
        assert claims.birth_date == date(2012, 5, 1)
        assert claims.expires_at - claims.issued_at == timedelta(hours=24)

    def test_platform_owner_has_no_tenant(self) -> None:
        codec = SessionTokenCodec(_SECRET)
        owner = Principal(
            principal_id=UUID(int=7),
            email="root@kinship.test",
            name="Root",
            role=Role.PLATFORM_OWNER,
        )
        claims = codec.verify(codec.issue(owner))
        assert claims.tenant_id is None
        assert claims.birth_date is None

    def test_custom_ttl(self) -> None:
        fixed = datetime.now(UTC).replace(microsecond=0)
        codec = SessionTokenCodec(_SECRET, clock=lambda: fixed)
        claims = codec.verify(codec.issue(_member(), ttl=timedelta(days=30)))
        assert claims.expires_at == fixed + timedelta(days=30)


@pytest.mark.unit
class TestExpiry:
    """Expired versus invalid."""

    def test_negative_ttl_is_expired(self) -> None:
        codec = SessionTokenCodec(_SECRET)
        token = codec.issue(_member(), ttl=timedelta(seconds=-1))
        with pytest.raises(TokenExpiredError):
            codec.verify(token)

    def test_tampered_expired_token_is_invalid(self) -> None:
        codec = SessionTokenCodec(_SECRET)
        token = codec.issue(_member(), ttl=timedelta(seconds=-1))
        header, payload, signature = token.split(".")
        with pytest.raises(TokenInvalidError):
            codec.verify(f"{header}.{payload}.{_mutate(signature, 0)}")


@pytest.mark.unit
class TestTamperRejection:
    """Any modification yields TokenInvalidError."""

    def test_every_single_character_change_is_invalid(self) -> None:
        codec = SessionTokenCodec(_SECRET)
        token = codec.issue(_member())
        for index, char in enumerate(token):
            if char == ".":
                continue
            with pytest.raises(TokenInvalidError):
                codec.verify(_mutate(token, index))

    def test_unused_trailing_bits_of_signature_rejected(self) -> None:
        codec = SessionTokenCodec(_SECRET)
        token = codec.issue(_member())
        # A 32-byte HS256 signature encodes to 43 chars; the last char carries
        # 2 unused bits, so flipping the lowest bit decodes to the same bytes.
        last = token[-1]
        flipped = _ALPHABET[_ALPHABET.index(last) ^ 1]
        with pytest.raises(TokenInvalidError):
            codec.verify(token[:-1] + flipped)

    def test_wrong_secret_is_invalid(self) -> None:
        token = SessionTokenCodec("x" * 48).issue(_member())
        with pytest.raises(TokenInvalidError):
            SessionTokenCodec(_SECRET).verify(token)

    def test_unsigned_token_is_invalid(self) -> None:
        header = base64url_encode(json.dumps({"alg": "none", "typ": "JWT"}).encode()).decode()
        payload = base64url_encode(
            json.dumps({"sub": str(UUID(int=1)), "role": "PLATFORM_OWNER"}).encode()
        ).decode()
        with pytest.raises(TokenInvalidError):
            SessionTokenCodec(_SECRET).verify(f"{header}.{payload}.")

    def test_other_algorithm_is_invalid(self) -> None:
        now = int(datetime.now(UTC).timestamp())
        token = pyjwt.encode(
            {"sub": str(UUID(int=1)), "role": "CO_OWNER", "iat": now, "exp": now + 60},
            _SECRET,
            algorithm="HS512",
        )
        with pytest.raises(TokenInvalidError):
            SessionTokenCodec(_SECRET).verify(token)

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b", "a.b.c.d", "not a token at all"])
    def test_malformed_is_invalid(self, garbage: str) -> None:
        with pytest.raises(TokenInvalidError):
            SessionTokenCodec(_SECRET).verify(garbage)

    def test_unknown_role_claim_is_invalid(self) -> None:
        now = int(datetime.now(UTC).timestamp())
        token = pyjwt.encode(
            {"sub": str(UUID(int=1)), "role": "SUPER_ADMIN", "iat": now, "exp": now + 60},
            _SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            SessionTokenCodec(_SECRET).verify(token)
