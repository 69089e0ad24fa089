"""
Vendor approval state machine.

Two observable states: PENDING (``approved_at`` is null) and APPROVED.
Revocation is a transition back to PENDING, not a third state.  The
transition functions only compute the column changes; the caller writes
them in a single UPDATE so ``approved_at`` and ``approved_by_id`` never
disagree.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

from portal.core.errors import AlreadyApproved, NotAVendor
from portal.models.account import Role


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"


def status_of(account: Any) -> ApprovalStatus:
    return ApprovalStatus.APPROVED if account.approved_at is not None else ApprovalStatus.PENDING


def can_authenticate(account: Any) -> bool:
    """Approval gate at login: only vendors can be held back."""
    if account.role != Role.VENDOR:
        return True
    return status_of(account) == ApprovalStatus.APPROVED


def initial_approval(role: Role, creator_id: int | None, auto_approve: bool = False) -> dict:
    """Approval columns for a freshly created account.

    ADMIN and SUPER_ADMIN start approved by their creator; a VENDOR starts
    pending unless its creator asked for auto-approval.  Accounts with no
    creator (self-registration, the seeded super admin) carry no approval
    stamp, since ``approved_by_id`` must be set whenever ``approved_at`` is.
    """
    if creator_id is not None and (role != Role.VENDOR or auto_approve):
        return {"approved_at": datetime.now(timezone.utc), "approved_by_id": creator_id}
    return {"approved_at": None, "approved_by_id": None}


def approve(account: Any, approver_id: int, now: datetime | None = None) -> dict:
    if account.role != Role.VENDOR:
        raise NotAVendor("Only vendors can be approved")
    if status_of(account) == ApprovalStatus.APPROVED:
        raise AlreadyApproved()
    return {
        "approved_at": now or datetime.now(timezone.utc),
        "approved_by_id": approver_id,
    }


def revoke(account: Any) -> dict:
    if account.role != Role.VENDOR:
        raise NotAVendor("Only vendors can have approval revoked")
    return {"approved_at": None, "approved_by_id": None}
