"""Request ID middleware for correlation and tracing.

Pure ASGI middleware that extracts, generates and propagates request IDs
(correlation IDs). The id is stored in a context variable for the
request duration and bound to structlog's contextvars so every log line
of the request carries it.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

from kinship.foundation.application.contributions import (
    MIDDLEWARE_PRIORITY_REQUEST_ID,
    MiddlewareContribution,
)

if TYPE_CHECKING:
    from collections.abc import Callable

REQUEST_ID_HEADER = "X-Request-ID"

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current request ID from context.

    Returns:
        Current request ID, or empty string outside of a request.
    """
    return request_id_ctx.get()


def _is_valid_uuid(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError):
        return False
    return True


def extract_header(headers: list[tuple[bytes, bytes]], name: bytes) -> str:
    """Extract a header value from raw ASGI headers (case-insensitive name)."""
    for key, value in headers:
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


class RequestIdMiddleware:
    """Pure ASGI middleware for X-Request-ID extraction and propagation.

    This middleware:
    1. Extracts X-Request-ID from incoming request headers
    2. Generates a new UUID4 if the header is missing or not a UUID
    3. Stores the request ID in a context variable for the request duration
    4. Binds it to structlog contextvars as ``request_id``
    5. Adds X-Request-ID to response headers

    Invalid ids from clients are replaced rather than rejected.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = extract_header(scope.get("headers", []), b"x-request-id")
        if not _is_valid_uuid(request_id):
            request_id = str(uuid.uuid4())

        token = request_id_ctx.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)

        async def send_with_request_id(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_ctx.reset(token)
            structlog.contextvars.unbind_contextvars("request_id")


contribution = MiddlewareContribution(
    middleware_class=RequestIdMiddleware,
    priority=MIDDLEWARE_PRIORITY_REQUEST_ID,
)
