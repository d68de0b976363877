"""Credential extraction from an incoming request.

Sources, first present wins:
    1. ``Authorization: Bearer <token>``
    2. Session cookie (default ``token``)
    3. Query parameter (default ``token``)

All sources feed the same codec and resolver.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.requests import Request

_BEARER_PREFIX = "bearer "


def extract_credential(
    request: Request,
    *,
    cookie_name: str = "token",
    query_param: str = "token",
) -> str | None:
    """Return the first non-empty credential on the request, or None."""
    header = request.headers.get("Authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() == _BEARER_PREFIX:
        token = header[len(_BEARER_PREFIX) :].strip()
        if token:
            return token

    cookie = request.cookies.get(cookie_name)
    if cookie:
        return cookie

    query = request.query_params.get(query_param)
    if query:
        return query
    return None
