"""
Vendor management endpoints — listing, approval and revocation.

Open to SUPER_ADMIN and to ADMIN accounts holding ``manage_vendors``.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query

from portal.api.v1.deps import get_current_identity, get_repository, require
from portal.api.v1.endpoints.users import StatusFilter, parse_status
from portal.notifications import Notifier, get_notifier
from portal.policy.roles import Action
from portal.repository import AccountRepository
from portal.schemas.account import AccountList, AccountRead, AccountResponse
from portal.schemas.token import Identity
from portal.services import approvals

router = APIRouter(prefix="/vendors", tags=["vendors"])


@router.get("", response_model=AccountList)
async def list_vendors(
    status_filter: StatusFilter = Query("all", alias="status"),
    identity: Identity = Depends(require(Action.LIST_VENDORS)),
    repo: AccountRepository = Depends(get_repository),
) -> AccountList:
    found = await approvals.list_vendors(repo, identity, parse_status(status_filter))
    return AccountList(
        accounts=[AccountRead.model_validate(a) for a in found],
        total=len(found),
    )


@router.post("/{vendor_id}/approval", response_model=AccountResponse)
async def approve_vendor(
    background_tasks: BackgroundTasks,
    vendor_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> AccountResponse:
    """Approve a pending vendor. The vendor is notified after the response."""
    vendor = await approvals.approve_vendor(repo, notifier, background_tasks, identity, vendor_id)
    return AccountResponse(
        message="Vendor approved successfully",
        account=AccountRead.model_validate(vendor),
    )


@router.delete("/{vendor_id}/approval", response_model=AccountResponse)
async def revoke_vendor(
    background_tasks: BackgroundTasks,
    vendor_id: int = Path(..., ge=1),
    reason: str | None = Query(None, max_length=500),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> AccountResponse:
    """Revoke a vendor's approval, returning it to pending."""
    vendor = await approvals.revoke_vendor(
        repo, notifier, background_tasks, identity, vendor_id, reason
    )
    return AccountResponse(
        message="Vendor approval revoked successfully",
        account=AccountRead.model_validate(vendor),
    )
