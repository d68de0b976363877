"""Integration tests: sessions from sign-in to rejection, through the full app."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from kinship.foundation.domain import Principal, Role

if TYPE_CHECKING:
    from fastapi.testclient import TestClient


def _error_code(resp) -> str:  # type: ignore[no-untyped-def]
    return resp.json()["error_code"]


@pytest.mark.integration
class TestSignIn:
    """Registration, login and the session it yields."""

    def test_register_then_login(self, client: TestClient, world) -> None:
        registered = client.post(
            "/auth/register",
            json={
                "email": "Newcomer@Smith.Family",
                "password": "a-long-password",
                "display_name": "Newcomer",
                "tenant_domain": world.smiths.domain,
            },
        )
        assert registered.status_code == 201
        assert registered.json()["role"] == "RESTRICTED_MEMBER"
        assert registered.json()["tenant_id"] == str(world.smiths.tenant_id)

        login = client.post(
            "/auth/login",
            json={"identifier": "newcomer@smith.family", "password": "a-long-password"},
        )
        assert login.status_code == 200
        assert login.cookies.get("token") == login.json()["token"]

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["principal"]["email"] == "newcomer@smith.family"

    def test_username_login_needs_family_when_shared(
        self, client: TestClient, world, sign_in
    ) -> None:
        # Both families seed an owner named "parent".
        resp = client.post(
            "/auth/login", json={"identifier": "parent", "password": "correct horse battery"}
        )
        assert resp.status_code == 401

        headers = sign_in("parent", tenant_domain=world.joneses.domain)
        me = client.get("/auth/me", headers=headers).json()
        assert me["principal"]["tenant_id"] == str(world.joneses.tenant_id)

    def test_wrong_password_is_generic(self, client: TestClient, world) -> None:
        wrong = client.post(
            "/auth/login",
            json={"identifier": world.smiths.owner_email, "password": "not it at all"},
        )
        unknown = client.post(
            "/auth/login",
            json={"identifier": "nobody@smith.family", "password": "not it at all"},
        )
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["detail"] == unknown.json()["detail"]
        assert _error_code(wrong) == _error_code(unknown) == "INVALID_CREDENTIAL"


@pytest.mark.integration
class TestCredentialRejection:
    """The middleware turns every bad credential into a 401 problem."""

    def test_missing_token(self, client: TestClient) -> None:
        resp = client.get("/chores")
        assert resp.status_code == 401
        assert _error_code(resp) == "MISSING_TOKEN"
        assert resp.headers["WWW-Authenticate"].startswith("Bearer")
        assert resp.headers["content-type"].startswith("application/problem+json")

    def test_expired_and_tampered_are_distinguished(
        self, client: TestClient, world, sign_in
    ) -> None:
        codec = client.app.state.token_codec  # type: ignore[attr-defined]
        owner = Principal(
            world.smiths.owner_id,
            world.smiths.owner_email,
            "Smith parent",
            Role.TENANT_OWNER,
            tenant_id=world.smiths.tenant_id,
        )
        expired = codec.issue(owner, ttl=timedelta(seconds=-1))
        resp = client.get("/chores", headers={"Authorization": f"Bearer {expired}"})
        assert resp.status_code == 401
        assert _error_code(resp) == "SESSION_EXPIRED"

        mine = sign_in(world.smiths.child_email)["Authorization"].removeprefix("Bearer ")
        theirs = sign_in(world.smiths.owner_email)["Authorization"].removeprefix("Bearer ")
        header, _, signature = mine.split(".")
        forged = ".".join([header, theirs.split(".")[1], signature])
        resp = client.get("/chores", headers={"Authorization": f"Bearer {forged}"})
        assert resp.status_code == 401
        assert _error_code(resp) == "INVALID_CREDENTIAL"

        # One character of the signature altered.
        flipped = "A" if mine[-10] != "A" else "B"
        altered = mine[:-10] + flipped + mine[-9:]
        resp = client.get("/chores", headers={"Authorization": f"Bearer {altered}"})
        assert _error_code(resp) == "INVALID_CREDENTIAL"

    def test_garbage_token(self, client: TestClient) -> None:
        resp = client.get("/chores", headers={"Authorization": "Bearer not-a-token"})
        assert _error_code(resp) == "INVALID_CREDENTIAL"

    def test_query_parameter_credential(self, client: TestClient, world, sign_in) -> None:
        token = sign_in(world.smiths.owner_email)["Authorization"].removeprefix("Bearer ")
        assert client.get("/chores", params={"token": token}).status_code == 200


@pytest.mark.integration
class TestRevocation:
    """Disabling an account or a family ends its sessions on the next request."""

    def test_disabled_account(self, client: TestClient, world, sign_in) -> None:
        child = sign_in(world.smiths.child_email)
        owner = sign_in(world.smiths.owner_email)
        assert client.get("/chores", headers=child).status_code == 200

        resp = client.delete(f"/principals/{world.smiths.child_id}", headers=owner)
        assert resp.status_code == 200
        assert resp.json()["active"] is False

        resp = client.get("/chores", headers=child)
        assert resp.status_code == 401
        assert _error_code(resp) == "ACCOUNT_DISABLED"

    def test_disabled_family(
        self, client: TestClient, world, sign_in, bypass_headers: dict[str, str]
    ) -> None:
        owner = sign_in(world.joneses.owner_email)
        resp = client.put(
            f"/platform/tenants/{world.joneses.tenant_id}",
            json={"active": False},
            headers=bypass_headers,
        )
        assert resp.status_code == 200

        resp = client.get("/chores", headers=owner)
        assert resp.status_code == 401
        assert _error_code(resp) == "TENANT_DISABLED"

        # New sign-ins are refused with the generic answer.
        resp = client.post(
            "/auth/login",
            json={"identifier": world.joneses.owner_email, "password": "correct horse battery"},
        )
        assert resp.status_code == 401


@pytest.mark.integration
class TestBypass:
    def test_acts_as_platform_owner(
        self, client: TestClient, world, bypass_headers: dict[str, str]
    ) -> None:
        me = client.get("/auth/me", headers=bypass_headers).json()
        assert me["principal"]["role"] == "PLATFORM_OWNER"
        assert me["principal"]["tenant_id"] is None
        assert me["via_bypass"] is True

        tenants = client.get("/platform/tenants", headers=bypass_headers).json()
        assert tenants["total"] == 2


@pytest.mark.integration
class TestAccountSelfService:
    """Availability checks are public. Account changes need a session."""

    def test_availability_without_credential(self, client: TestClient, world) -> None:
        resp = client.get(f"/auth/check-email/{world.smiths.owner_email}")
        assert resp.status_code == 200
        assert resp.json()["available"] is False

        resp = client.get(
            "/auth/check-username/parent", params={"tenant_domain": world.smiths.domain}
        )
        assert resp.json()["available"] is False

    def test_account_changes_need_session(self, client: TestClient) -> None:
        resp = client.put("/auth/account/name", json={"display_name": "Nobody"})
        assert resp.status_code == 401
        assert _error_code(resp) == "MISSING_TOKEN"

    def test_child_renames_own_account(self, client: TestClient, world, sign_in) -> None:
        child = sign_in(world.smiths.child_email)
        resp = client.put("/auth/account/name", json={"display_name": "Smith kid"}, headers=child)
        assert resp.status_code == 200
        me = client.get("/auth/me", headers=child).json()
        assert me["principal"]["name"] == "Smith kid"
