"""Integration tests: family data stays inside the family."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

if TYPE_CHECKING:
    from fastapi.testclient import TestClient


@pytest.mark.integration
class TestCrossTenantAccess:
    """Another family's records answer exactly like records that do not exist."""

    def test_chore_of_other_family_is_404(self, client: TestClient, world, sign_in) -> None:
        jones = sign_in(world.joneses.owner_email)
        smith = sign_in(world.smiths.owner_email)
        chore = client.post("/chores", json={"title": "Walk the dog"}, headers=jones).json()

        assert client.get(f"/chores/{chore['id']}", headers=smith).status_code == 404
        missing = client.get(f"/chores/{uuid4()}", headers=smith)
        guessed = client.get(f"/chores/{chore['id']}", headers=smith)
        assert missing.json()["error_code"] == guessed.json()["error_code"] == "RESOURCE_NOT_FOUND"
        assert client.get("/chores", headers=smith).json() == []
        assert client.get(f"/chores/{chore['id']}", headers=jones).status_code == 200

    def test_principal_of_other_family_is_404(self, client: TestClient, world, sign_in) -> None:
        smith = sign_in(world.smiths.owner_email)
        resp = client.get(f"/principals/{world.joneses.child_id}", headers=smith)
        assert resp.status_code == 404
        resp = client.delete(f"/principals/{world.joneses.child_id}", headers=smith)
        assert resp.status_code == 404

        listed = client.get("/principals", headers=smith).json()
        assert {p["email"] for p in listed["principals"]} == {
            world.smiths.owner_email,
            world.smiths.child_email,
        }

    def test_tenant_header_is_ignored_for_members(
        self, client: TestClient, world, sign_in
    ) -> None:
        smith = sign_in(world.smiths.owner_email)
        headers = {**smith, "X-Tenant-ID": str(world.joneses.tenant_id)}
        created = client.post("/chores", json={"title": "Mine"}, headers=headers)
        assert created.status_code == 201
        assert created.json()["tenant_id"] == str(world.smiths.tenant_id)


@pytest.mark.integration
class TestPlatformOwnerTargeting:
    """Platform owners pick a family with X-Tenant-ID."""

    def test_target_pins_scope(self, client: TestClient, world, sign_in) -> None:
        root = sign_in(world.platform_owner_email)
        smiths = {**root, "X-Tenant-ID": str(world.smiths.tenant_id)}
        joneses = {**root, "X-Tenant-ID": str(world.joneses.tenant_id)}

        created = client.post("/chores", json={"title": "Plan trip"}, headers=joneses)
        assert created.status_code == 201
        assert created.json()["tenant_id"] == str(world.joneses.tenant_id)

        assert client.get("/chores", headers=smiths).json() == []
        assert len(client.get("/chores", headers=root).json()) == 1

    def test_create_without_target(self, client: TestClient, world, sign_in) -> None:
        root = sign_in(world.platform_owner_email)
        resp = client.post("/chores", json={"title": "Nowhere"}, headers=root)
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "NO_TENANT_CONTEXT"

    @pytest.mark.parametrize(
        ("value", "status", "code"),
        [
            ("not-a-uuid", 400, "INVALID_TENANT_ID"),
            (str(uuid4()), 404, "RESOURCE_NOT_FOUND"),
        ],
    )
    def test_bad_target(
        self,
        client: TestClient,
        world,
        sign_in,
        value: str,
        status: int,
        code: str,
    ) -> None:
        root = sign_in(world.platform_owner_email)
        resp = client.get("/chores", headers={**root, "X-Tenant-ID": value})
        assert resp.status_code == status
        assert resp.json()["error_code"] == code


@pytest.mark.integration
class TestAgeGatedBilling:
    """Billing refuses minors before any payment adapter is touched."""

    def test_minor_is_refused(self, client: TestClient, world, sign_in) -> None:
        child = sign_in(world.smiths.child_email)
        resp = client.post(
            "/billing/payments",
            json={"amount_cents": 999, "description": "Game"},
            headers=child,
        )
        assert resp.status_code == 403
        assert resp.json()["error_code"] == "AGE_RESTRICTED"

        pages = client.get("/auth/pages", headers=child).json()["pages"]
        assert "billing" not in pages
        assert "chores" in pages

    def test_adult_reaches_gateway_check(self, client: TestClient, world, sign_in) -> None:
        owner = sign_in(world.smiths.owner_email)
        resp = client.post(
            "/billing/payments",
            json={"amount_cents": 999, "description": "Flowers"},
            headers=owner,
        )
        # No gateway is configured in this deployment.
        assert resp.status_code == 503
        overview = client.get("/billing", headers=owner).json()
        assert overview["payments_enabled"] is False
