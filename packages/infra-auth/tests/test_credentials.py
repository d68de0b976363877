"""Tests for credential extraction order."""

from __future__ import annotations

import pytest
from starlette.requests import Request

from kinship.infra.auth.credentials import extract_credential


def _request(
    *,
    authorization: str | None = None,
    cookie: str | None = None,
    query: str = "",
) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    if cookie is not None:
        headers.append((b"cookie", cookie.encode()))
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": headers,
        "query_string": query.encode(),
    }
    return Request(scope)


@pytest.mark.unit
class TestExtractCredential:
    """Header, then cookie, then query."""

    def test_bearer_header_wins(self) -> None:
        request = _request(authorization="Bearer from-header", cookie="token=c", query="token=q")
        assert extract_credential(request) == "from-header"

    def test_bearer_scheme_case_insensitive(self) -> None:
        assert extract_credential(_request(authorization="bearer abc")) == "abc"

    def test_cookie_when_no_header(self) -> None:
        request = _request(cookie="token=from-cookie", query="token=q")
        assert extract_credential(request) == "from-cookie"

    def test_query_last(self) -> None:
        assert extract_credential(_request(query="token=from-query")) == "from-query"

    def test_non_bearer_header_ignored(self) -> None:
        request = _request(authorization="Basic dXNlcjpwdw==", cookie="token=c")
        assert extract_credential(request) == "c"

    def test_empty_bearer_falls_through(self) -> None:
        request = _request(authorization="Bearer ", query="token=q")
        assert extract_credential(request) == "q"

    def test_custom_names(self) -> None:
        request = _request(cookie="session=s", query="t=q")
        assert extract_credential(request, cookie_name="session", query_param="t") == "s"

    def test_none_when_absent(self) -> None:
        assert extract_credential(_request()) is None
