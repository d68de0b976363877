"""Tests for domain exception hierarchy."""

from __future__ import annotations

from uuid import UUID

import pytest

from kinship.foundation.domain.exceptions import (
    AccountDisabledError,
    AgeRestrictedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainConflictError,
    DomainError,
    EmailConflictError,
    InvalidCredentialError,
    NoTenantContextError,
    NotFoundError,
    RoleNotPermittedError,
    SessionExpiredError,
    TenantDisabledError,
    TenantMismatchError,
    UnknownActionError,
    UsernameConflictError,
    ValidationError,
)


@pytest.mark.unit
class TestDomainError:
    """Tests for base DomainError."""

    def test_message_and_code(self) -> None:
        err = DomainError("Something failed")
        assert err.message == "Something failed"
        assert err.error_code == "DOMAIN_ERROR"
        assert err.context == {}

    def test_str_with_context(self) -> None:
        err = DomainError("Failed", context={"a": "1"})
        assert str(err) == "Failed (a=1)"

    def test_repr(self) -> None:
        err = DomainError("Failed", context={"a": "1"})
        assert "DomainError" in repr(err)
        assert "Failed" in repr(err)


@pytest.mark.unit
class TestNotFoundError:
    """Tests for NotFoundError."""

    def test_message_format(self) -> None:
        err = NotFoundError("Tenant", "family.local")
        assert str(err).startswith("Tenant not found: family.local")
        assert err.error_code == "RESOURCE_NOT_FOUND"

    def test_uuid_resource_id(self) -> None:
        uid = UUID("550e8400-e29b-41d4-a716-446655440000")
        err = NotFoundError("Chore", uid)
        assert err.resource_id == uid
        assert err.context["resource_id"] == str(uid)


@pytest.mark.unit
class TestValidationError:
    """Tests for ValidationError."""

    def test_fields(self) -> None:
        err = ValidationError("role", "not allowed")
        assert err.field == "role"
        assert err.reason == "not allowed"
        assert err.error_code == "VALIDATION_ERROR"


@pytest.mark.unit
class TestConflictErrors:
    """Uniqueness conflicts are distinct ConflictError subclasses."""

    @pytest.mark.parametrize(
        ("err", "code"),
        [
            (EmailConflictError("a@b.co"), "EMAIL_CONFLICT"),
            (UsernameConflictError("kid", "t-1"), "USERNAME_CONFLICT"),
            (DomainConflictError("family.local"), "DOMAIN_CONFLICT"),
        ],
    )
    def test_codes(self, err: ConflictError, code: str) -> None:
        assert isinstance(err, ConflictError)
        assert err.error_code == code

    def test_email_conflict_does_not_echo_address(self) -> None:
        err = EmailConflictError("secret@example.com")
        assert "secret@example.com" not in str(err)
        assert err.email == "secret@example.com"

    def test_domain_conflict_message(self) -> None:
        err = DomainConflictError("family.local")
        assert "family.local" in err.message


@pytest.mark.unit
class TestAuthenticationErrors:
    """401 subclasses carry their own error code and RFC 6750 error."""

    @pytest.mark.parametrize(
        ("cls", "code"),
        [
            (InvalidCredentialError, "INVALID_CREDENTIAL"),
            (SessionExpiredError, "SESSION_EXPIRED"),
            (AccountDisabledError, "ACCOUNT_DISABLED"),
            (TenantDisabledError, "TENANT_DISABLED"),
        ],
    )
    def test_codes(self, cls: type[AuthenticationError], code: str) -> None:
        err = cls()
        assert isinstance(err, AuthenticationError)
        assert err.error_code == code
        assert err.auth_error == "invalid_token"

    def test_expired_message_differs_from_invalid(self) -> None:
        assert SessionExpiredError().message != InvalidCredentialError().message

    def test_base_accepts_custom_code(self) -> None:
        err = AuthenticationError("Missing", auth_error="invalid_request", error_code="MISSING_TOKEN")
        assert err.error_code == "MISSING_TOKEN"
        assert err.auth_error == "invalid_request"


@pytest.mark.unit
class TestAuthorizationErrors:
    """403 subclasses."""

    def test_age_restricted_states_requirement(self) -> None:
        err = AgeRestrictedError("billing:create", minimum_age=18)
        assert "18" in err.message
        assert err.error_code == "AGE_RESTRICTED"
        assert isinstance(err, AuthorizationError)

    def test_role_not_permitted(self) -> None:
        err = RoleNotPermittedError("tenant:create", "CO_OWNER")
        assert err.context == {"action": "tenant:create", "role": "CO_OWNER"}

    def test_unknown_action(self) -> None:
        err = UnknownActionError("chore:fly")
        assert err.action == "chore:fly"
        assert err.error_code == "UNKNOWN_ACTION"

    def test_tenant_mismatch(self) -> None:
        err = TenantMismatchError("Chore", tenant_id="t-2")
        assert err.context["tenant_id"] == "t-2"
        assert "Chore" in err.message


@pytest.mark.unit
class TestNoTenantContextError:
    """NoTenantContextError is a contract violation, not a denial."""

    def test_not_an_authorization_error(self) -> None:
        err = NoTenantContextError()
        assert not isinstance(err, AuthorizationError)
        assert err.error_code == "NO_TENANT_CONTEXT"
