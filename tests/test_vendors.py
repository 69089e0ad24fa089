"""
Vendor approval workflow tests, end to end through the API.
"""

import pytest
from conftest import DEFAULT_PASSWORD, auth_headers
from httpx import AsyncClient

from portal.models.account import Role

VENDORS = "/api/v1/vendors"


@pytest.fixture
async def vendor_admin(make_account):
    return await make_account(Role.ADMIN, feature_flags={"manage_vendors": True})


@pytest.mark.asyncio
async def test_acme_signup_to_dashboard(
    async_client: AsyncClient, super_admin, vendor_admin, notifier
):
    """Register, get blocked, get approved, sign in."""
    signup = {
        "name": "Alice",
        "email": "alice@acme.example",
        "password": DEFAULT_PASSWORD,
        "company_name": "Acme",
    }
    registered = await async_client.post("/api/v1/auth/register", json=signup)
    vendor_id = registered.json()["account"]["id"]

    credentials = {"username": "alice@acme.example", "password": DEFAULT_PASSWORD}
    blocked = await async_client.post("/api/v1/auth/login", data=credentials)
    assert blocked.status_code == 403

    approved = await async_client.post(
        f"{VENDORS}/{vendor_id}/approval", headers=auth_headers(vendor_admin)
    )
    assert approved.status_code == 200
    assert approved.json()["account"]["approved_by_id"] == vendor_admin.id
    assert notifier.kinds() == ["new_vendor", "vendor_approved"]

    login = await async_client.post("/api/v1/auth/login", data=credentials)
    assert login.status_code == 200
    token = login.json()["access_token"]

    dashboard = await async_client.get(
        "/vendor/dashboard", headers={"Authorization": f"Bearer {token}"}
    )
    assert dashboard.status_code == 200
    assert dashboard.json()["approval_status"] == "approved"


@pytest.mark.asyncio
async def test_approve_twice(async_client: AsyncClient, super_admin, make_account, notifier):
    vendor = await make_account(Role.VENDOR, approved=False)
    headers = auth_headers(super_admin)
    first = await async_client.post(f"{VENDORS}/{vendor.id}/approval", headers=headers)
    assert first.status_code == 200
    second = await async_client.post(f"{VENDORS}/{vendor.id}/approval", headers=headers)
    assert second.status_code == 409
    assert second.json()["kind"] == "already_approved"
    assert notifier.kinds() == ["vendor_approved"]


@pytest.mark.asyncio
async def test_approve_non_vendor(async_client: AsyncClient, super_admin, make_account):
    admin = await make_account(Role.ADMIN)
    response = await async_client.post(
        f"{VENDORS}/{admin.id}/approval", headers=auth_headers(super_admin)
    )
    assert response.status_code == 422
    assert response.json()["kind"] == "not_a_vendor"


@pytest.mark.asyncio
async def test_approve_missing_vendor(async_client: AsyncClient, super_admin):
    response = await async_client.post(f"{VENDORS}/999/approval", headers=auth_headers(super_admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_without_capability_cannot_approve(
    async_client: AsyncClient, make_account, repo
):
    admin = await make_account(Role.ADMIN)
    vendor = await make_account(Role.VENDOR, approved=False)
    response = await async_client.post(
        f"{VENDORS}/{vendor.id}/approval", headers=auth_headers(admin)
    )
    assert response.status_code == 403
    assert (await repo.get(vendor.id)).approved_at is None


@pytest.mark.asyncio
async def test_revoke_returns_vendor_to_pending(
    async_client: AsyncClient, vendor_admin, make_account, notifier
):
    vendor = await make_account(Role.VENDOR, approved_by_id=vendor_admin.id)
    response = await async_client.delete(
        f"{VENDORS}/{vendor.id}/approval",
        params={"reason": "Missing tax documents"},
        headers=auth_headers(vendor_admin),
    )
    assert response.status_code == 200
    account = response.json()["account"]
    assert account["approved_at"] is None
    assert account["approved_by_id"] is None
    assert notifier.sent == [("vendor_rejected", (vendor.email, "Missing tax documents"))]

    login = await async_client.post(
        "/api/v1/auth/login", data={"username": vendor.email, "password": DEFAULT_PASSWORD}
    )
    assert login.status_code == 403


@pytest.mark.asyncio
async def test_approval_survives_notifier_failure(
    async_client: AsyncClient, super_admin, make_account, failing_notifier, repo
):
    vendor = await make_account(Role.VENDOR, approved=False)
    response = await async_client.post(
        f"{VENDORS}/{vendor.id}/approval", headers=auth_headers(super_admin)
    )
    assert response.status_code == 200
    assert (await repo.get(vendor.id)).approved_by_id == super_admin.id


@pytest.mark.asyncio
async def test_list_vendors_by_status(
    async_client: AsyncClient, vendor_admin, make_account
):
    await make_account(Role.VENDOR)
    pending = await make_account(Role.VENDOR, approved=False)
    headers = auth_headers(vendor_admin)

    response = await async_client.get(VENDORS, params={"status": "pending"}, headers=headers)
    assert response.status_code == 200
    assert [a["id"] for a in response.json()["accounts"]] == [pending.id]

    everyone = await async_client.get(VENDORS, headers=headers)
    assert everyone.json()["total"] == 2


@pytest.mark.asyncio
async def test_vendor_cannot_list_vendors(async_client: AsyncClient, make_account):
    vendor = await make_account(Role.VENDOR)
    response = await async_client.get(VENDORS, headers=auth_headers(vendor))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_no_token_is_unauthenticated(async_client: AsyncClient):
    response = await async_client.get(VENDORS)
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_acme_approval_scenario(
    async_client: AsyncClient, super_admin, vendor_admin, make_account, notifier, repo
):
    acme = await make_account(Role.VENDOR, approved=False, company_name="Acme")
    plain_admin = await make_account(Role.ADMIN)
    url = f"{VENDORS}/{acme.id}/approval"

    denied = await async_client.post(url, headers=auth_headers(plain_admin))
    assert denied.status_code == 403

    approved = await async_client.post(url, headers=auth_headers(super_admin))
    assert approved.json()["account"]["approved_by_id"] == super_admin.id
    assert notifier.kinds() == ["vendor_approved"]

    revoked = await async_client.delete(url, headers=auth_headers(vendor_admin))
    assert revoked.status_code == 200
    stored = await repo.get(acme.id)
    assert stored.approved_at is None and stored.approved_by_id is None


@pytest.mark.asyncio
async def test_approve_revoke_approve_gives_fresh_stamp(
    async_client: AsyncClient, super_admin, vendor_admin, make_account
):
    vendor = await make_account(Role.VENDOR, approved=False)
    url = f"{VENDORS}/{vendor.id}/approval"

    first = await async_client.post(url, headers=auth_headers(super_admin))
    await async_client.delete(url, headers=auth_headers(super_admin))
    second = await async_client.post(url, headers=auth_headers(vendor_admin))

    assert second.status_code == 200
    assert first.json()["account"]["approved_by_id"] == super_admin.id
    assert second.json()["account"]["approved_by_id"] == vendor_admin.id
    assert second.json()["account"]["approved_at"] is not None


@pytest.mark.asyncio
async def test_approved_vendors_name_their_approver(
    async_client: AsyncClient, super_admin, make_account
):
    await make_account(Role.VENDOR)
    await make_account(Role.VENDOR, approved=False)
    response = await async_client.get(VENDORS, headers=auth_headers(super_admin))
    for account in response.json()["accounts"]:
        assert (account["approved_at"] is None) == (account["approved_by_id"] is None)


@pytest.mark.asyncio
async def test_deleted_approver_token_cannot_approve(
    async_client: AsyncClient, super_admin, make_account, repo
):
    other = await make_account(Role.SUPER_ADMIN)
    vendor = await make_account(Role.VENDOR, approved=False)
    headers = auth_headers(other)
    await repo.delete(other.id, reassign_approvals_to=super_admin.id)

    response = await async_client.post(f"{VENDORS}/{vendor.id}/approval", headers=headers)
    assert response.status_code == 401
    assert response.json()["kind"] == "unauthenticated"
    stored = await repo.get(vendor.id)
    assert stored.approved_at is None and stored.approved_by_id is None
