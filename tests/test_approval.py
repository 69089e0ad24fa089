"""
Vendor approval state machine tests.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from portal.core.errors import AlreadyApproved, NotAVendor
from portal.models.account import Role
from portal.policy.approval import (
    ApprovalStatus,
    approve,
    can_authenticate,
    initial_approval,
    revoke,
    status_of,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _account(role: Role, approved: bool = False) -> SimpleNamespace:
    return SimpleNamespace(
        role=role.value,
        approved_at=NOW if approved else None,
        approved_by_id=1 if approved else None,
    )


def test_status_of():
    assert status_of(_account(Role.VENDOR)) == ApprovalStatus.PENDING
    assert status_of(_account(Role.VENDOR, approved=True)) == ApprovalStatus.APPROVED


def test_only_pending_vendors_are_held_back():
    assert not can_authenticate(_account(Role.VENDOR))
    assert can_authenticate(_account(Role.VENDOR, approved=True))
    # Admins authenticate whatever their approval columns say
    assert can_authenticate(_account(Role.ADMIN))
    assert can_authenticate(_account(Role.SUPER_ADMIN))


def test_approve_pending_vendor():
    changes = approve(_account(Role.VENDOR), approver_id=7, now=NOW)
    assert changes == {"approved_at": NOW, "approved_by_id": 7}


def test_approve_twice_rejected():
    with pytest.raises(AlreadyApproved):
        approve(_account(Role.VENDOR, approved=True), approver_id=7)


def test_approve_non_vendor_rejected():
    with pytest.raises(NotAVendor):
        approve(_account(Role.ADMIN), approver_id=7)


def test_revoke_clears_both_columns():
    assert revoke(_account(Role.VENDOR, approved=True)) == {
        "approved_at": None,
        "approved_by_id": None,
    }


def test_revoke_pending_vendor_is_noop_transition():
    assert revoke(_account(Role.VENDOR)) == {"approved_at": None, "approved_by_id": None}


def test_revoke_non_vendor_rejected():
    with pytest.raises(NotAVendor):
        revoke(_account(Role.SUPER_ADMIN))


def test_initial_approval():
    admin = initial_approval(Role.ADMIN, creator_id=1)
    assert admin["approved_by_id"] == 1 and admin["approved_at"] is not None

    assert initial_approval(Role.VENDOR, creator_id=1) == {
        "approved_at": None,
        "approved_by_id": None,
    }
    assert initial_approval(Role.VENDOR, creator_id=1, auto_approve=True)["approved_by_id"] == 1
    # Self-registration has no approver
    assert initial_approval(Role.VENDOR, None, auto_approve=True)["approved_at"] is None
