"""Session authentication middleware.

Resolves the request credential (Bearer header, cookie or query parameter)
through the AuthenticationResolver stored on ``app.state.auth_resolver``
and binds the resulting Principal to the request context.

Middleware position in stack (LIFO registration order):
  Request -> RequestId -> SessionAuth -> TenantScope -> Route

Design decisions:
- Use BaseHTTPMiddleware so the principal ContextVar set in ``dispatch``
  is copied into the downstream task and into threadpool workers.
- Return JSONResponse directly for auth errors (not raise HTTPException)
  because BaseHTTPMiddleware dispatch cannot propagate exceptions through
  the ASGI stack.
- The resolver hits the database, so it runs in the threadpool.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from kinship.foundation.application.context import (
    clear_principal_context,
    set_principal_context,
)
from kinship.foundation.application.contributions import (
    MIDDLEWARE_PRIORITY_AUTH,
    MiddlewareContribution,
)
from kinship.foundation.domain.exceptions import AuthenticationError
from kinship.infra.auth.credentials import extract_credential
from kinship.infra.auth.settings import get_auth_settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

# Default paths reachable without a credential.
DEFAULT_EXCLUDED_PREFIXES = (
    "/healthz",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/auth/login",
    "/auth/logout",
    "/auth/register",
    "/auth/external/",
    "/auth/check-",
)

_PROBLEM_MEDIA_TYPE = "application/problem+json"


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Authenticates every non-excluded request.

    Request flow:
    1. Excluded path -> skip auth
    2. Extract credential (header, cookie, query)
    3. Resolve through the AuthenticationResolver in the threadpool
    4. Bind the Principal to the request context
    5. Call next middleware/handler, then reset the context

    Error flow:
    - No resolver configured -> 503
    - No credential -> 401 MISSING_TOKEN
    - Resolver failure -> 401 with the failure's error code
      (INVALID_CREDENTIAL, SESSION_EXPIRED, ACCOUNT_DISABLED, TENANT_DISABLED)

    All 401 responses include WWW-Authenticate: Bearer header per RFC 6750.
    """

    def __init__(
        self,
        app: Any,
        excluded_prefixes: tuple[str, ...] | None = None,
        cookie_name: str | None = None,
        query_param: str | None = None,
    ) -> None:
        """Initialize authentication middleware.

        Args:
            app: ASGI application (passed by Starlette).
            excluded_prefixes: Path prefixes to skip auth on.
            cookie_name: Session cookie name. Defaults to AUTH_COOKIE_NAME.
            query_param: Token query parameter. Defaults to AUTH_QUERY_PARAM.
        """
        super().__init__(app)
        settings = get_auth_settings()
        self._excluded_prefixes = (
            excluded_prefixes if excluded_prefixes is not None else DEFAULT_EXCLUDED_PREFIXES
        )
        self._cookie_name = cookie_name or settings.cookie_name
        self._query_param = query_param or settings.query_param

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self._excluded_prefixes):
            return await call_next(request)

        resolver = getattr(request.app.state, "auth_resolver", None)
        if resolver is None:
            return self._problem(
                request,
                503,
                "SERVICE_UNAVAILABLE",
                "Authentication service not configured",
            )

        credential = extract_credential(
            request,
            cookie_name=self._cookie_name,
            query_param=self._query_param,
        )
        if credential is None:
            return self._problem(
                request,
                401,
                "MISSING_TOKEN",
                "Authentication required",
                auth_error="invalid_request",
            )

        client_ip = request.client.host if request.client else None
        try:
            principal = await run_in_threadpool(resolver.resolve, credential, client_ip)
        except AuthenticationError as exc:
            return self._problem(
                request,
                401,
                exc.error_code,
                exc.message,
                auth_error=exc.auth_error,
            )

        request.state.principal = principal
        principal_token = set_principal_context(principal)
        try:
            return await call_next(request)
        finally:
            clear_principal_context(principal_token)

    def _problem(
        self,
        request: Request,
        status_code: int,
        error_code: str,
        message: str,
        auth_error: str = "invalid_token",
    ) -> JSONResponse:
        """Build RFC 7807 + RFC 6750 compliant error response."""
        logger.info(
            "auth_validation_failed",
            extra={
                "error_code": error_code,
                "path": request.url.path,
                "method": request.method,
            },
        )

        headers: dict[str, str] = {}
        if status_code == 401:
            headers["WWW-Authenticate"] = (
                f'Bearer realm="kinship", error="{auth_error}", error_description="{message}"'
            )

        return JSONResponse(
            status_code=status_code,
            content={
                "type": f"/errors/{error_code.lower().replace('_', '-')}",
                "title": "Unauthorized" if status_code == 401 else "Service Unavailable",
                "status": status_code,
                "detail": message,
                "error_code": error_code,
                "instance": str(request.url.path),
            },
            media_type=_PROBLEM_MEDIA_TYPE,
            headers=headers,
        )


contribution = MiddlewareContribution(
    middleware_class=SessionAuthMiddleware,
    priority=MIDDLEWARE_PRIORITY_AUTH,
)
