"""
Role dashboards.

These live outside ``/api`` so the route guard middleware has already
checked the caller's role against the path prefix before a handler runs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from portal.api.v1.deps import get_current_identity, get_repository
from portal.core.errors import NotFound
from portal.models.account import Account
from portal.policy.approval import status_of
from portal.policy.flags import default_flags, enabled_features, has_capability
from portal.repository import AccountRepository
from portal.schemas.account import AccountRead
from portal.schemas.dashboard import AdminDashboard, SuperAdminDashboard, VendorDashboard
from portal.schemas.token import Identity

router = APIRouter(tags=["dashboards"])


async def _own_account(repo: AccountRepository, identity: Identity) -> Account:
    account = await repo.get(identity.id)
    if account is None:
        raise NotFound("Account no longer exists")
    return account


@router.get("/vendor/dashboard", response_model=VendorDashboard)
async def vendor_dashboard(
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> VendorDashboard:
    account = await _own_account(repo, identity)
    return VendorDashboard(
        account=AccountRead.model_validate(account),
        approval_status=status_of(account),
    )


@router.get("/admin/dashboard", response_model=AdminDashboard)
async def admin_dashboard(
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> AdminDashboard:
    account = await _own_account(repo, identity)
    # Capabilities come from the session snapshot, not the stored row.
    flags = identity.feature_flags or default_flags()
    pending = None
    if has_capability(identity.role, identity.feature_flags, "manage_vendors"):
        pending = await repo.count_pending_vendors()
    return AdminDashboard(
        account=AccountRead.model_validate(account),
        feature_flags=flags,
        enabled_features=enabled_features(flags),
        pending_vendors=pending,
    )


@router.get("/superadmin/dashboard", response_model=SuperAdminDashboard)
async def superadmin_dashboard(
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> SuperAdminDashboard:
    account = await _own_account(repo, identity)
    return SuperAdminDashboard(
        account=AccountRead.model_validate(account),
        accounts_by_role=await repo.count_by_role(),
        pending_vendors=await repo.count_pending_vendors(),
    )
