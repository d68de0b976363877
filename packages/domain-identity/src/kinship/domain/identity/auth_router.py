"""Authentication REST API: sign-up, sign-in, sign-out, session introspection.

``/auth/register``, ``/auth/login``, ``/auth/logout``, ``/auth/check-*`` and
``/auth/external/*`` are reachable without a credential. ``/auth/me`` and
``/auth/pages`` describe the principal resolved for the request, and
``/auth/account/*`` lets that principal change its own password, display
name and email.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta  # noqa: TC003 -- pydantic needs them at runtime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID  # noqa: TC003 -- pydantic needs UUID at runtime

from fastapi import APIRouter, Query, Request, Response
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from kinship.domain.identity.account_service import AccountService
from kinship.domain.identity.account_settings import AccountSettingsService
from kinship.domain.identity.dependencies import (
    Correlations,
    ExternalVerifier,
    PasswordHasher,
    TokenCodec,
)
from kinship.domain.identity.external_sign_in import ExternalSignInService
from kinship.foundation.application.authorization import accessible_pages
from kinship.foundation.domain.exceptions import InvalidCredentialError
from kinship.foundation.domain.user_value_objects import ExternalProvider
from kinship.infra.auth.correlation import DEFAULT_REDIRECT, PendingFlow
from kinship.infra.auth.dependencies import CurrentPrincipal
from kinship.infra.auth.settings import get_auth_settings
from kinship.infra.persistence.database import DbSession

if TYPE_CHECKING:
    from kinship.domain.identity.principal import PrincipalRecord
    from kinship.foundation.domain.principal import Principal
    from kinship.infra.auth.token_codec import SessionTokenCodec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# -- Request / Response models ------------------------------------------------


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8, max_length=72)
    display_name: str = Field(min_length=1, max_length=255)
    tenant_domain: str = Field(min_length=2, max_length=253)
    username: str | None = Field(default=None, min_length=3, max_length=50)
    birth_date: date | None = None


class LoginRequest(BaseModel):
    identifier: str = Field(min_length=1, max_length=255, description="Email or username")
    password: str = Field(min_length=1, max_length=256)
    remember_me: bool = False
    tenant_domain: str | None = Field(
        default=None,
        description="Needed only when the username exists in several families",
    )


class ExternalStartRequest(BaseModel):
    tenant_domain: str | None = Field(default=None, max_length=253)
    redirect: str = DEFAULT_REDIRECT

    @field_validator("redirect")
    @classmethod
    def _local_redirect(cls, value: str) -> str:
        if not value.startswith("/") or value.startswith("//"):
            msg = "redirect must be a local path"
            raise ValueError(msg)
        return value


class ExternalStartResponse(BaseModel):
    provider: ExternalProvider
    correlation_key: str
    expires_in: int


class ExternalCompleteRequest(BaseModel):
    correlation_key: str = Field(min_length=1, max_length=128)
    code: str = Field(min_length=1, max_length=4096)


class SessionPrincipalResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    tenant_id: UUID | None
    birth_date: date | None


class RegisteredResponse(BaseModel):
    id: UUID
    email: str
    username: str | None
    display_name: str
    role: str
    tenant_id: UUID | None
    email_verified: bool
    created_at: datetime


class SessionResponse(BaseModel):
    token: str
    expires_in: int
    principal: SessionPrincipalResponse
    pages: list[str]


class ExternalSessionResponse(SessionResponse):
    redirect: str


class MeResponse(BaseModel):
    principal: SessionPrincipalResponse
    pages: list[str]
    via_bypass: bool


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=256)
    new_password: str = Field(min_length=8, max_length=72)


class RenameRequest(BaseModel):
    display_name: str = Field(min_length=1, max_length=255)


class ChangeEmailRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=256)


class AccountResponse(BaseModel):
    id: UUID
    email: str
    username: str | None
    display_name: str
    email_verified: bool


class AvailabilityResponse(BaseModel):
    value: str
    available: bool


class PagesResponse(BaseModel):
    pages: list[str]


# -- Endpoints ----------------------------------------------------------------


@router.post("/register", status_code=201)
def register(
    body: RegisterRequest,
    session: DbSession,
    hasher: PasswordHasher,
) -> RegisteredResponse:
    """Join a family account as a restricted member."""
    record = AccountService(session, hasher).register(
        email=body.email,
        password=body.password,
        display_name=body.display_name,
        tenant_domain=body.tenant_domain,
        username=body.username,
        birth_date=body.birth_date,
    )
    return RegisteredResponse(
        id=record.id,
        email=record.email,
        username=record.username,
        display_name=record.display_name,
        role=record.role,
        tenant_id=record.tenant_id,
        email_verified=record.email_verified,
        created_at=record.created_at,
    )


@router.post("/login")
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    session: DbSession,
    hasher: PasswordHasher,
    codec: TokenCodec,
) -> SessionResponse:
    """Sign in with email or username and password.

    Every failure answers the same 401 ``INVALID_CREDENTIAL``.
    """
    record = AccountService(session, hasher).authenticate(
        body.identifier,
        body.password,
        tenant_domain=body.tenant_domain,
        client_ip=request.client.host if request.client else None,
    )
    token, ttl = _start_session(response, codec, record, remember=body.remember_me)
    return SessionResponse(token=token, expires_in=ttl, **_describe(record.to_principal()))


@router.post("/logout")
def logout(response: Response) -> dict[str, str]:
    """Clear the session cookie. Bearer tokens simply expire."""
    settings = get_auth_settings()
    response.delete_cookie(
        settings.cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    return {"status": "logged_out"}


@router.get("/me")
def me(principal: CurrentPrincipal) -> MeResponse:
    """The principal resolved for this request and the pages it may open."""
    return MeResponse(via_bypass=principal.via_bypass, **_describe(principal))


@router.get("/pages")
def pages(principal: CurrentPrincipal) -> PagesResponse:
    return PagesResponse(pages=accessible_pages(principal.role, principal.birth_date))


@router.get("/check-username/{username}")
def check_username(
    username: str,
    tenant_domain: Annotated[str, Query(min_length=2, max_length=253)],
    session: DbSession,
    hasher: PasswordHasher,
) -> AvailabilityResponse:
    """Whether a username is still free in a family, for sign-up forms."""
    available = AccountService(session, hasher).username_available(username, tenant_domain)
    return AvailabilityResponse(value=username, available=available)


@router.get("/check-email/{email}")
def check_email(email: str, session: DbSession, hasher: PasswordHasher) -> AvailabilityResponse:
    available = AccountService(session, hasher).email_available(email)
    return AvailabilityResponse(value=email, available=available)


@router.put("/account/password")
def change_password(
    body: ChangePasswordRequest,
    principal: CurrentPrincipal,
    session: DbSession,
    hasher: PasswordHasher,
) -> dict[str, str]:
    """Change one's own password. The current password must be supplied."""
    AccountSettingsService(session, hasher).change_password(
        principal.principal_id, body.current_password, body.new_password
    )
    return {"status": "password_changed"}


@router.put("/account/name")
def rename_account(
    body: RenameRequest,
    principal: CurrentPrincipal,
    session: DbSession,
    hasher: PasswordHasher,
) -> AccountResponse:
    record = AccountSettingsService(session, hasher).rename(
        principal.principal_id, body.display_name
    )
    return _account_response(record)


@router.put("/account/email")
def change_email(
    body: ChangeEmailRequest,
    principal: CurrentPrincipal,
    session: DbSession,
    hasher: PasswordHasher,
) -> AccountResponse:
    """Move one's own account to another email address.

    The address must be free in every family and starts unverified.
    """
    record = AccountSettingsService(session, hasher).change_email(
        principal.principal_id, body.email, body.password
    )
    return _account_response(record)


@router.post("/external/{provider}/start")
async def start_external_sign_in(
    provider: ExternalProvider,
    body: ExternalStartRequest,
    store: Correlations,
) -> ExternalStartResponse:
    """Open an external sign-in and return its single-use correlation key.

    The key travels through the provider handshake (e.g. as OAuth ``state``)
    and comes back to ``/complete``.
    """
    flow = PendingFlow(
        provider=provider.value,
        tenant_domain=body.tenant_domain,
        redirect=body.redirect,
    )
    key = await store.put(flow)
    logger.info("external_sign_in_started", extra={"provider": provider.value})
    return ExternalStartResponse(
        provider=provider,
        correlation_key=key,
        expires_in=get_auth_settings().correlation_ttl_seconds,
    )


@router.post("/external/{provider}/complete")
async def complete_external_sign_in(
    provider: ExternalProvider,
    body: ExternalCompleteRequest,
    response: Response,
    session: DbSession,
    store: Correlations,
    verifier: ExternalVerifier,
    codec: TokenCodec,
) -> ExternalSessionResponse:
    """Finish an external sign-in: verify the code, link or create, start a session.

    Raises:
        InvalidCredentialError: Unknown, expired or reused correlation key,
            a provider mismatch, or a rejected code.
    """
    flow = await store.consume(body.correlation_key)
    if flow is None or flow.provider != provider.value:
        logger.info(
            "external_sign_in_rejected",
            extra={"provider": provider.value, "flow_found": flow is not None},
        )
        raise InvalidCredentialError("External sign-in expired or unknown")

    identity = await verifier.verify(provider.value, body.code)
    record = await run_in_threadpool(
        ExternalSignInService(session).sign_in,
        identity,
        flow.tenant_domain,
    )
    token, ttl = _start_session(response, codec, record, remember=False)
    return ExternalSessionResponse(
        token=token,
        expires_in=ttl,
        redirect=flow.redirect,
        **_describe(record.to_principal()),
    )


# -- Helpers ------------------------------------------------------------------


def _start_session(
    response: Response,
    codec: SessionTokenCodec,
    record: PrincipalRecord,
    *,
    remember: bool,
) -> tuple[str, int]:
    settings = get_auth_settings()
    ttl = settings.remember_ttl_seconds if remember else settings.token_ttl_seconds
    token = codec.issue(record.to_principal(), timedelta(seconds=ttl))
    response.set_cookie(
        settings.cookie_name,
        token,
        max_age=ttl,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    return token, ttl


def _describe(principal: Principal) -> dict[str, object]:
    return {
        "principal": SessionPrincipalResponse(
            id=principal.principal_id,
            email=principal.email,
            name=principal.name,
            role=str(principal.role),
            tenant_id=principal.tenant_id,
            birth_date=principal.birth_date,
        ),
        "pages": accessible_pages(principal.role, principal.birth_date),
    }


def _account_response(record: PrincipalRecord) -> AccountResponse:
    return AccountResponse(
        id=record.id,
        email=record.email,
        username=record.username,
        display_name=record.display_name,
        email_verified=record.email_verified,
    )
