"""
Admin feature flag API tests.
"""

import pytest
from conftest import auth_headers
from httpx import AsyncClient

from portal.models.account import Role


def _url(account_id: int) -> str:
    return f"/api/v1/users/{account_id}/feature-flags"


@pytest.mark.asyncio
async def test_read_defaults(async_client: AsyncClient, super_admin, make_account):
    admin = await make_account(Role.ADMIN, name="Ops")
    response = await async_client.get(_url(admin.id), headers=auth_headers(super_admin))
    assert response.status_code == 200
    data = response.json()
    assert data["user_name"] == "Ops"
    assert data["enabled"] == []
    assert data["labels"]["manage_vendors"] == "Manage Vendors"
    assert set(data["labels"]) == set(data["feature_flags"])
    assert data["feature_flags"] == {
        "manage_vendors": False,
        "manage_products": False,
        "manage_orders": False,
    }


@pytest.mark.asyncio
async def test_patch_merges(async_client: AsyncClient, super_admin, make_account):
    admin = await make_account(Role.ADMIN, feature_flags={"manage_orders": True})
    headers = auth_headers(super_admin)
    response = await async_client.patch(
        _url(admin.id), json={"manage_vendors": True}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["account"]["feature_flags"] == {
        "manage_vendors": True,
        "manage_products": False,
        "manage_orders": True,
    }

    again = await async_client.get(_url(admin.id), headers=headers)
    assert again.json()["enabled"] == ["manage_vendors", "manage_orders"]


@pytest.mark.asyncio
async def test_unknown_flag_rejected(async_client: AsyncClient, super_admin, make_account):
    admin = await make_account(Role.ADMIN)
    response = await async_client.patch(
        _url(admin.id), json={"manage_payroll": True}, headers=auth_headers(super_admin)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_flags_only_for_admins(async_client: AsyncClient, super_admin, make_account):
    vendor = await make_account(Role.VENDOR)
    response = await async_client.get(_url(vendor.id), headers=auth_headers(super_admin))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admin_cannot_edit_own_flags(async_client: AsyncClient, make_account):
    admin = await make_account(Role.ADMIN, feature_flags={"manage_vendors": True})
    response = await async_client.patch(
        _url(admin.id), json={"manage_orders": True}, headers=auth_headers(admin)
    )
    assert response.status_code == 403
