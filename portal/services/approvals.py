"""
Vendor approval workflow: listing, approving and revoking vendors.
"""

from __future__ import annotations

import logging

from fastapi import BackgroundTasks

from portal.core.errors import AlreadyApproved, NotFound
from portal.models.account import Account, Role
from portal.notifications import Notifier, dispatch_notification
from portal.policy import approval
from portal.policy.approval import ApprovalStatus
from portal.policy.roles import Action, authorize
from portal.repository import AccountRepository
from portal.schemas.token import Identity
from portal.services.accounts import ensure_actor_exists

logger = logging.getLogger(__name__)


async def _vendor(repo: AccountRepository, vendor_id: int) -> Account:
    account = await repo.get(vendor_id)
    if account is None:
        raise NotFound("Vendor not found")
    return account


async def list_vendors(
    repo: AccountRepository,
    actor: Identity,
    status: ApprovalStatus | None = None,
) -> list[Account]:
    authorize(actor, Action.LIST_VENDORS)
    return await repo.list_accounts(role=Role.VENDOR, status=status)


async def approve_vendor(
    repo: AccountRepository,
    notifier: Notifier,
    tasks: BackgroundTasks,
    actor: Identity,
    vendor_id: int,
) -> Account:
    authorize(actor, Action.APPROVE_VENDOR)
    vendor = await _vendor(repo, vendor_id)
    changes = approval.approve(vendor, actor.id)
    await ensure_actor_exists(repo, actor)

    # Conditional write: a concurrent approval that landed first wins.
    updated = await repo.update(vendor.id, changes, only_if=Account.approved_at.is_(None))
    if updated is None:
        raise AlreadyApproved()

    logger.info("Vendor %s approved by %s", updated.email, actor.email)
    tasks.add_task(dispatch_notification, notifier.notify_vendor_approved, updated)
    return updated


async def revoke_vendor(
    repo: AccountRepository,
    notifier: Notifier,
    tasks: BackgroundTasks,
    actor: Identity,
    vendor_id: int,
    reason: str | None = None,
) -> Account:
    authorize(actor, Action.REVOKE_VENDOR)
    vendor = await _vendor(repo, vendor_id)
    changes = approval.revoke(vendor)

    updated = await repo.update(vendor.id, changes)
    if updated is None:
        raise NotFound("Vendor not found")

    logger.info("Vendor %s approval revoked by %s", updated.email, actor.email)
    tasks.add_task(dispatch_notification, notifier.notify_vendor_rejected, updated, reason)
    return updated
