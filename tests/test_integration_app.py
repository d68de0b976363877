"""Integration tests: the discovered application surface."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import pytest

if TYPE_CHECKING:
    from fastapi import FastAPI
    from fastapi.testclient import TestClient


@pytest.mark.integration
class TestDiscovery:
    """Every installed contribution is wired without manual registration."""

    def test_routes_from_every_package(self, app: FastAPI) -> None:
        paths = {route.path for route in app.routes}  # type: ignore[attr-defined]
        assert {
            "/healthz",
            "/auth/login",
            "/principals",
            "/platform/tenants",
            "/chores",
            "/billing/payments",
        } <= paths

    def test_lifespan_publishes_services(self, client: TestClient) -> None:
        state = client.app.state  # type: ignore[attr-defined]
        assert state.token_codec is not None
        assert state.auth_resolver is not None
        assert state.principal_directory is not None
        assert state.tenant_membership is not None


@pytest.mark.integration
class TestHealth:
    def test_healthz_is_public(self, client: TestClient) -> None:
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json()["checks"]["database"] == {"status": "ok"}


@pytest.mark.integration
class TestRequestId:
    def test_generated(self, client: TestClient) -> None:
        UUID(client.get("/healthz").headers["X-Request-ID"])

    def test_propagated(self, client: TestClient) -> None:
        provided = "12345678-1234-5678-1234-567812345678"
        resp = client.get("/healthz", headers={"X-Request-ID": provided})
        assert resp.headers["X-Request-ID"] == provided


@pytest.mark.integration
class TestProblemDetails:
    """Errors leave the app as RFC 7807 documents."""

    def test_validation_error(self, client: TestClient) -> None:
        resp = client.post("/auth/register", json={"email": "x"})
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["status"] == 422
        assert body["error_code"] == "REQUEST_VALIDATION_ERROR"

    def test_unknown_family_on_register(self, client: TestClient, world) -> None:
        resp = client.post(
            "/auth/register",
            json={
                "email": "someone@nowhere.example",
                "password": "a-long-password",
                "display_name": "Someone",
                "tenant_domain": "nowhere.example",
            },
        )
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "UNKNOWN_TENANT"

    def test_forbidden_role(self, client: TestClient, world, sign_in) -> None:
        child = sign_in(world.smiths.child_email)
        resp = client.post(
            "/principals",
            json={"email": "x@smith.family", "display_name": "X"},
            headers=child,
        )
        assert resp.status_code == 403
        assert resp.json()["error_code"] == "ROLE_NOT_PERMITTED"


@pytest.mark.integration
class TestCors:
    def test_preflight_allows_configured_origin(self, client: TestClient) -> None:
        resp = client.options(
            "/auth/login",
            headers={
                "Origin": "https://app.kinship.example",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "https://app.kinship.example"
        assert resp.headers["access-control-allow-credentials"] == "true"
