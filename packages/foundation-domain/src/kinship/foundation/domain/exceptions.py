"""Domain exception hierarchy for type-safe error handling.

This module provides the base exception hierarchy for all domain errors.
Exceptions include structured error codes and context for consistent
API error handling and logging across packages.

Authentication failures (401) and authorization denials (403) are split
into narrow subclasses so the HTTP layer and operators can tell a bad
credential from a disabled account, and an ordinary role denial from the
billing age gate.

Example:
    >>> from kinship.foundation.domain.exceptions import NotFoundError
    >>> from uuid import UUID
    >>> raise NotFoundError("Chore", UUID("550e8400-e29b-41d4-a716-446655440000"))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID

__all__ = [
    "AccountDisabledError",
    "AgeRestrictedError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DomainConflictError",
    "DomainError",
    "EmailConflictError",
    "InvalidCredentialError",
    "NoTenantContextError",
    "NotFoundError",
    "RoleNotPermittedError",
    "SessionExpiredError",
    "TenantDisabledError",
    "TenantMismatchError",
    "UnknownActionError",
    "UsernameConflictError",
    "ValidationError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging. All domain
    exceptions inherit from this class to enable consistent API error
    handling and logging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (record IDs, field names).

    Example:
        >>> raise DomainError("Operation failed", context={"record_id": "123"})
        DomainError: Operation failed (record_id=123)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
                     Values are typically strings, UUIDs, or primitive types.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found. Also used for records that exist but belong
    to another tenant: the tenant filter makes them invisible, so callers
    cannot confirm their existence.

    Attributes:
        error_code: "RESOURCE_NOT_FOUND" (class constant).
        resource_type: Type of missing resource.
        resource_id: Identifier of missing resource.

    Example:
        >>> raise NotFoundError("Tenant", "family.local")
        NotFoundError: Tenant not found: family.local
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: UUID | str,
        **extra_context: Any,
    ) -> None:
        """Initialize not found error.

        Args:
            resource_type: Type of resource (e.g., "Tenant", "Chore").
            resource_id: Identifier of missing resource. UUID is converted to string.
            **extra_context: Additional debugging context.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found: {resource_id}"
        context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            **extra_context,
        }
        super().__init__(message, context)


class ValidationError(DomainError):
    """Raised when input fails domain validation rules.

    Maps to HTTP 422 Unprocessable Entity. Use for domain rule violations
    on command input, not for Pydantic schema validation.

    Example:
        >>> raise ValidationError("role", "Platform owners cannot belong to a tenant")
        ValidationError: Validation failed for 'role': Platform owners cannot belong to a tenant
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        **extra_context: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            field: Field path that failed validation.
            reason: Human-readable validation failure reason.
            **extra_context: Additional debugging context.
        """
        self.field = field
        self.reason = reason
        message = f"Validation failed for '{field}': {reason}"
        context = {
            "field": field,
            "reason": reason,
            **extra_context,
        }
        super().__init__(message, context)


class ConflictError(DomainError):
    """Raised when operation conflicts with current system state.

    Maps to HTTP 409 Conflict. Use for duplicate resource creation or for
    operations blocked by dependent state (e.g. deleting a tenant that still
    has active members).

    Example:
        >>> raise ConflictError("Tenant still has active principals", active_principals=3)
        ConflictError: Conflict: Tenant still has active principals (active_principals=3)
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of conflict.
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class EmailConflictError(ConflictError):
    """Raised when an email address is already registered anywhere in the system."""

    error_code: str = "EMAIL_CONFLICT"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("Email already registered")


class UsernameConflictError(ConflictError):
    """Raised when a username is already taken within the same tenant."""

    error_code: str = "USERNAME_CONFLICT"

    def __init__(self, username: str, tenant_id: UUID | str) -> None:
        self.username = username
        super().__init__("Username already taken", tenant_id=str(tenant_id))


class DomainConflictError(ConflictError):
    """Raised when a tenant routing domain is already in use."""

    error_code: str = "DOMAIN_CONFLICT"

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"Domain '{domain}' is already in use", domain=domain)


class NoTenantContextError(DomainError):
    """Raised when a tenant-scoped operation runs without a target tenant.

    Maps to HTTP 400 Bad Request. This is a caller-contract violation (a
    platform owner calling a tenant operation without naming a tenant), not
    a security denial.
    """

    error_code: str = "NO_TENANT_CONTEXT"

    def __init__(
        self,
        message: str = "A target tenant is required for this operation",
        **context: Any,
    ) -> None:
        super().__init__(message, context)


class AuthenticationError(DomainError):
    """Raised when authentication fails (missing, expired, invalid credential).

    Maps to HTTP 401 Unauthorized. All 401 responses MUST include
    WWW-Authenticate header per RFC 6750.

    Attributes:
        error_code: Machine-readable error code (e.g., "MISSING_TOKEN").
        auth_error: RFC 6750 error code for WWW-Authenticate header.

    Example:
        >>> raise AuthenticationError("Token has expired", auth_error="invalid_token",
        ...     error_code="SESSION_EXPIRED")
    """

    error_code: str = "AUTHENTICATION_ERROR"

    def __init__(
        self,
        message: str,
        auth_error: str = "invalid_token",
        error_code: str = "AUTHENTICATION_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize authentication error.

        Args:
            message: Human-readable error description.
            auth_error: RFC 6750 error code for WWW-Authenticate header.
            error_code: Machine-readable error code for client handling.
            context: Structured debugging information.
        """
        self.auth_error = auth_error
        self.error_code = error_code
        super().__init__(message, context)


class InvalidCredentialError(AuthenticationError):
    """Malformed, unsigned or tampered token, unknown bypass value, or failed login.

    Login failures of every kind collapse into this error so that callers
    cannot tell an unknown account from a wrong password.
    """

    error_code: str = "INVALID_CREDENTIAL"

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            auth_error="invalid_token",
            error_code=type(self).error_code,
            context=context,
        )


class SessionExpiredError(AuthenticationError):
    """Structurally valid credential that is past its expiry."""

    error_code: str = "SESSION_EXPIRED"

    def __init__(
        self,
        message: str = "Session expired, please log in again",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            auth_error="invalid_token",
            error_code=type(self).error_code,
            context=context,
        )


class AccountDisabledError(AuthenticationError):
    """The principal behind a valid credential is missing or disabled."""

    error_code: str = "ACCOUNT_DISABLED"

    def __init__(
        self,
        message: str = "Account disabled or not found",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            auth_error="invalid_token",
            error_code=type(self).error_code,
            context=context,
        )


class TenantDisabledError(AuthenticationError):
    """The tenant of a non-platform principal is missing or disabled."""

    error_code: str = "TENANT_DISABLED"

    def __init__(
        self,
        message: str = "Tenant account is disabled",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            auth_error="invalid_token",
            error_code=type(self).error_code,
            context=context,
        )


class AuthorizationError(DomainError):
    """Raised when authenticated principal lacks required permissions.

    Maps to HTTP 403 Forbidden. Denials are specific because the caller is
    already authenticated.

    Example:
        >>> raise AuthorizationError("Missing required role: TENANT_OWNER")
    """

    error_code: str = "AUTHORIZATION_ERROR"


class UnknownActionError(AuthorizationError):
    """An action that is not registered in the capability table was checked.

    This is a programming defect. The check fails closed.
    """

    error_code: str = "UNKNOWN_ACTION"

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Action is not registered: {action}", {"action": action})


class RoleNotPermittedError(AuthorizationError):
    """The principal's role is not allowed to perform the action."""

    error_code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, action: str, role: str) -> None:
        self.action = action
        self.role = role
        super().__init__(
            f"Role {role} is not permitted to perform {action}",
            {"action": action, "role": role},
        )


class AgeRestrictedError(AuthorizationError):
    """Billing denial for restricted members under the adult age."""

    error_code: str = "AGE_RESTRICTED"

    def __init__(self, action: str, minimum_age: int) -> None:
        self.action = action
        self.minimum_age = minimum_age
        super().__init__(
            f"You must be {minimum_age} or older to access billing. "
            "If this is wrong, update the date of birth on your profile.",
            {"action": action, "minimum_age": minimum_age},
        )


class TenantMismatchError(AuthorizationError):
    """A write targeted a record owned by a tenant outside the current scope."""

    error_code: str = "TENANT_MISMATCH"

    def __init__(self, entity: str, **context: Any) -> None:
        self.entity = entity
        super().__init__(
            f"{entity} belongs to a different tenant",
            {"entity": entity, **context},
        )
