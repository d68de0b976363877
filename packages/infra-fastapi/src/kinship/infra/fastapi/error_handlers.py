"""RFC 7807 Problem Details exception handlers for FastAPI.

Translates the domain error taxonomy into HTTP responses with
Content-Type: application/problem+json:

    AuthenticationError   -> 401 (+ WWW-Authenticate, RFC 6750)
    AuthorizationError    -> 403
    NoTenantContextError  -> 400
    NotFoundError         -> 404
    ConflictError         -> 409
    ValidationError       -> 422
    DomainError           -> 400 (fallback)
    NoRequestContextError -> 500 (unscoped data access, a defect)
    Exception             -> 500 (sanitized)

Usage:
    from kinship.infra.fastapi.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from kinship.foundation.application.context import NoRequestContextError
from kinship.foundation.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NoTenantContextError,
    NotFoundError,
    ValidationError,
)
from kinship.infra.fastapi.middleware.request_id import get_request_id

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response model.

    Standard fields:
    - type: URI reference identifying the problem type
    - title: Short human-readable summary
    - status: HTTP status code
    - detail: Human-readable explanation
    - instance: URI reference to specific occurrence

    Extension fields:
    - error_code: Machine-readable error code for client handling
    - context: Structured debugging information
    - correlation_id: Request correlation ID (5xx errors only)
    """

    type: str = Field(
        ...,
        description="URI reference identifying problem type",
        examples=["/errors/not-found", "/errors/age-restricted"],
    )
    title: str = Field(
        ...,
        description="Short human-readable summary",
        examples=["Resource Not Found", "Forbidden"],
    )
    status: int = Field(..., ge=400, le=599, description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str | None = Field(
        default=None,
        description="URI reference to specific occurrence (request path)",
    )
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code",
        examples=["RESOURCE_NOT_FOUND", "ROLE_NOT_PERMITTED"],
    )
    context: dict[str, Any] | None = Field(
        default=None,
        description="Structured debugging information",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for support requests",
    )


# Patterns for sensitive data inside free-form strings
_SENSITIVE_PATTERNS = [
    (
        re.compile(r"(postgresql(?:\+\w+)?)://[^@]*@[^/\s]*"),
        r"\1://[REDACTED]@[REDACTED]",
    ),
    (
        re.compile(r"password\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "password=[REDACTED]",
    ),
    (
        re.compile(r"secret\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "secret=[REDACTED]",
    ),
    (
        re.compile(r"token\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "token=[REDACTED]",
    ),
]

_SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "secret", "token", "credential", "cookie", "code"}
)


def _create_problem_response(problem: ProblemDetail) -> JSONResponse:
    """Create JSONResponse with RFC 7807 content type."""
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _get_correlation_id() -> str:
    """Request id set by RequestIdMiddleware, or "unknown" outside a request."""
    return get_request_id() or "unknown"


def _problem_type(error_code: str) -> str:
    return f"/errors/{error_code.lower().replace('_', '-')}"


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    """Sanitize a context dictionary for safe inclusion in responses.

    - Converts UUIDs and dates to strings
    - Drops sensitive keys and redacts sensitive substrings
    - Stringifies anything that is not JSON-serializable

    Args:
        context: Context dictionary from exception.

    Returns:
        Sanitized context dictionary, or None if empty.
    """
    if not context:
        return None

    sanitized = {
        key: _sanitize_value(value)
        for key, value in context.items()
        if key.lower() not in _SENSITIVE_KEYS
    }
    return sanitized or None


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return _redact_sensitive_strings(value)
    if isinstance(value, dict):
        return _sanitize_context(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _redact_sensitive_strings(text: str) -> str:
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


async def authentication_error_handler(
    request: Request,
    exc: AuthenticationError,
) -> JSONResponse:
    """Translate AuthenticationError to 401 with WWW-Authenticate header.

    Per RFC 6750 Section 3, all 401 responses for Bearer token errors
    MUST include a WWW-Authenticate header. The detail is the error's own
    message, which for login failures is the same generic text whatever
    went wrong.

    Args:
        request: FastAPI request object.
        exc: AuthenticationError instance with auth_error and error_code.

    Returns:
        JSONResponse with 401 status, problem details, and WWW-Authenticate header.
    """
    problem = ProblemDetail(
        type=_problem_type(exc.error_code),
        title="Unauthorized",
        status=401,
        detail=exc.message,
        instance=str(request.url.path),
        error_code=exc.error_code,
    )
    response = _create_problem_response(problem)
    response.headers["WWW-Authenticate"] = f'Bearer realm="kinship", error="{exc.auth_error}"'
    return response


async def authorization_error_handler(
    request: Request,
    exc: AuthorizationError,
) -> JSONResponse:
    """Translate AuthorizationError (role, age gate, unknown action) to 403."""
    problem = ProblemDetail(
        type=_problem_type(exc.error_code),
        title="Forbidden",
        status=403,
        detail=exc.message,
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def no_tenant_context_handler(
    request: Request,
    exc: NoTenantContextError,
) -> JSONResponse:
    """Translate NoTenantContextError to 400.

    A platform owner called a tenant-only operation without selecting a
    tenant through ``X-Tenant-ID``.
    """
    problem = ProblemDetail(
        type="/errors/no-tenant-context",
        title="Tenant Required",
        status=400,
        detail=exc.message,
        instance=str(request.url.path),
        error_code=exc.error_code,
    )
    return _create_problem_response(problem)


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Translate NotFoundError to 404 with RFC 7807 problem details.

    Records hidden by the tenant filter land here too, so cross-tenant
    guesses are indistinguishable from missing records.

    Args:
        request: FastAPI request object.
        exc: NotFoundError instance with resource_type and resource_id.

    Returns:
        JSONResponse with 404 status and problem details.
    """
    problem = ProblemDetail(
        type="/errors/not-found",
        title="Resource Not Found",
        status=404,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def conflict_error_handler(
    request: Request,
    exc: ConflictError,
) -> JSONResponse:
    """Translate ConflictError (and its uniqueness subclasses) to 409."""
    problem = ProblemDetail(
        type="/errors/conflict",
        title="Conflict",
        status=409,
        detail=exc.message,
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def validation_error_handler(
    request: Request,
    exc: ValidationError,
) -> JSONResponse:
    """Translate ValidationError to 422 with field-level details."""
    problem = ProblemDetail(
        type="/errors/validation-error",
        title="Validation Error",
        status=422,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def domain_error_handler(
    request: Request,
    exc: DomainError,
) -> JSONResponse:
    """Translate generic DomainError to 400 Bad Request.

    Fallback for domain errors without a more specific handler.
    """
    problem = ProblemDetail(
        type="/errors/domain-error",
        title="Bad Request",
        status=400,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def no_request_context_handler(
    request: Request,
    exc: NoRequestContextError,
) -> JSONResponse:
    """Translate NoRequestContextError to 500.

    Data access without a bound tenant scope or principal is a wiring
    defect. It is logged at ERROR and the request fails closed.
    """
    correlation_id = _get_correlation_id()
    logger.error(
        "request_context_missing",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "reason": str(exc),
        },
    )
    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail="An internal error occurred. Please contact support with the correlation ID.",
        instance=str(request.url.path),
        error_code="NO_REQUEST_CONTEXT",
        correlation_id=correlation_id,
    )
    return _create_problem_response(problem)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Translate Pydantic RequestValidationError to 422.

    Handles FastAPI's built-in validation of request bodies, query
    parameters, and path parameters. Input values are not echoed back so
    submitted passwords never appear in the response.
    """
    errors = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]

    problem = ProblemDetail(
        type="/errors/request-validation-error",
        title="Request Validation Error",
        status=422,
        detail="Request validation failed",
        instance=str(request.url.path),
        error_code="REQUEST_VALIDATION_ERROR",
        context={"errors": errors},
    )
    return _create_problem_response(problem)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs full exception details but returns a sanitized response to the
    client with a correlation ID. In debug mode, includes the exception
    type and message.

    Args:
        request: FastAPI request object.
        exc: Any unhandled exception.

    Returns:
        JSONResponse with 500 status and sanitized problem details.
    """
    correlation_id = _get_correlation_id()

    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )

    if getattr(request.app, "debug", False):
        detail = _redact_sensitive_strings(f"{type(exc).__name__}: {exc}")
        context: dict[str, Any] | None = {"exception_type": type(exc).__name__}
    else:
        detail = "An internal error occurred. Please contact support with the correlation ID."
        context = None

    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail=detail,
        instance=str(request.url.path),
        error_code="INTERNAL_ERROR",
        context=context,
        correlation_id=correlation_id,
    )
    return _create_problem_response(problem)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on a FastAPI application.

    Starlette picks the handler of the closest class in the exception's
    MRO, so the DomainError fallback never shadows a subclass handler.
    Declared as the ``rfc7807`` entry point in ``kinship.error_handlers``.

    Args:
        app: FastAPI application instance.
    """
    # Type ignores: Starlette's handler typing is narrower than the
    # specific exception types used here.
    app.add_exception_handler(
        AuthenticationError,
        authentication_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        AuthorizationError,
        authorization_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        NoTenantContextError,
        no_tenant_context_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        NotFoundError,
        not_found_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ConflictError,
        conflict_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ValidationError,
        validation_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        DomainError,
        domain_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        NoRequestContextError,
        no_request_context_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        request_validation_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)
