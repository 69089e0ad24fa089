"""
User management endpoints (super admin) and admin feature flags.

Every handler hands the caller's identity to the service layer, which
runs the role policy before reading or writing anything.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Path, Query, status

from portal.api.v1.deps import get_current_identity, get_repository
from portal.models.account import Role
from portal.policy.approval import ApprovalStatus
from portal.policy.flags import CAPABILITY_LABELS, enabled_features
from portal.repository import AccountRepository
from portal.schemas.account import (
    AccountCreate,
    AccountList,
    AccountRead,
    AccountResponse,
    DeleteResponse,
)
from portal.schemas.feature_flags import FeatureFlagsRead, FeatureFlagsUpdate
from portal.schemas.token import Identity
from portal.services import accounts

router = APIRouter(prefix="/users", tags=["users"])

RoleFilter = Literal["all", "VENDOR", "ADMIN", "SUPER_ADMIN"]
StatusFilter = Literal["all", "pending", "approved"]


def parse_status(value: str | None) -> ApprovalStatus | None:
    if value is None or value == "all":
        return None
    return ApprovalStatus(value)


@router.get("", response_model=AccountList)
async def list_users(
    role: RoleFilter = Query("all"),
    status_filter: StatusFilter = Query("all", alias="status"),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> AccountList:
    """List accounts, optionally filtered by role and approval status."""
    found = await accounts.list_accounts(
        repo,
        identity,
        role=None if role == "all" else Role(role),
        status=parse_status(status_filter),
    )
    return AccountList(
        accounts=[AccountRead.model_validate(a) for a in found],
        total=len(found),
    )


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: AccountCreate,
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> AccountResponse:
    """Create an account of any role."""
    account = await accounts.create_account(repo, identity, body)
    return AccountResponse(
        message="User created successfully",
        account=AccountRead.model_validate(account),
    )


@router.get("/{user_id}", response_model=AccountRead)
async def get_user(
    user_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> Any:
    return await accounts.get_account(repo, identity, user_id)


@router.put("/{user_id}", response_model=AccountResponse)
async def update_user(
    user_id: int = Path(..., ge=1),
    body: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> AccountResponse:
    """Update any field of an account (partial)."""
    account = await accounts.update_account(repo, identity, user_id, body)
    return AccountResponse(
        message="User updated successfully",
        account=AccountRead.model_validate(account),
    )


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> DeleteResponse:
    """Delete an account. Nobody can delete their own account."""
    await accounts.delete_account(repo, identity, user_id)
    return DeleteResponse(success=True, message="User deleted successfully")


# ── Feature flags (ADMIN accounts only) ─────────────────────────────
@router.get("/{user_id}/feature-flags", response_model=FeatureFlagsRead)
async def get_feature_flags(
    user_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> FeatureFlagsRead:
    account, flags = await accounts.get_feature_flags(repo, identity, user_id)
    return FeatureFlagsRead(
        user_id=account.id,
        user_name=account.name,
        feature_flags=flags,
        enabled=enabled_features(flags),
        labels=CAPABILITY_LABELS,
    )


@router.patch("/{user_id}/feature-flags", response_model=AccountResponse)
async def update_feature_flags(
    body: FeatureFlagsUpdate,
    user_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> AccountResponse:
    """Merge the given flags into the admin's stored flags.

    The admin's current session keeps its old flag snapshot until it is
    refreshed or they sign in again.
    """
    account = await accounts.update_feature_flags(repo, identity, user_id, body)
    return AccountResponse(
        message="Feature flags updated successfully",
        account=AccountRead.model_validate(account),
    )
