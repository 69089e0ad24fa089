"""
Account workflows: creation, self-registration, updates, deletion and
admin feature flags.

Each function checks the role policy before it touches the repository.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from fastapi import BackgroundTasks
from pydantic import BaseModel, ValidationError

from portal.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed
from portal.core.security import get_password_hash
from portal.models.account import Account, Role
from portal.notifications import Notifier, dispatch_notification
from portal.policy.approval import ApprovalStatus, initial_approval
from portal.policy.flags import effective_flags, merge
from portal.policy.roles import Action, authorize, authorize_field_update
from portal.repository import AccountRepository
from portal.schemas.account import AccountCreate, AccountUpdate, SelfUpdate, VendorRegistration
from portal.schemas.feature_flags import FeatureFlags, FeatureFlagsUpdate
from portal.schemas.token import Identity

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Columns that may never be nulled through an update.
_REQUIRED_COLUMNS = {"name", "email", "role"}


def parse_payload(model: type[M], data: dict[str, Any]) -> M:
    """Validate *data* against *model*, reporting field-level messages."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        errors = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "body"
            errors[field] = err["msg"]
        raise ValidationFailed("Invalid input", errors) from None


async def _get_or_404(repo: AccountRepository, account_id: int, what: str = "User") -> Account:
    account = await repo.get(account_id)
    if account is None:
        raise NotFound(f"{what} not found")
    return account


async def ensure_actor_exists(repo: AccountRepository, actor: Identity) -> None:
    """The session token may outlive its account; stamp only live approvers."""
    if await repo.get(actor.id) is None:
        raise Unauthenticated("Your account no longer exists")


async def _ensure_email_free(repo: AccountRepository, email: str) -> None:
    if await repo.find_by_email(email) is not None:
        raise Conflict("User with this email already exists")


# ── Reads ───────────────────────────────────────────────────────────
async def get_account(repo: AccountRepository, actor: Identity, account_id: int) -> Account:
    if account_id == actor.id:
        authorize(actor, Action.VIEW_SELF, account_id)
    else:
        authorize(actor, Action.VIEW_ACCOUNT, account_id)
    return await _get_or_404(repo, account_id)


async def list_accounts(
    repo: AccountRepository,
    actor: Identity,
    role: Role | None = None,
    status: ApprovalStatus | None = None,
) -> list[Account]:
    authorize(actor, Action.LIST_ACCOUNTS)
    return await repo.list_accounts(role=role, status=status)


# ── Creation ────────────────────────────────────────────────────────
async def create_account(
    repo: AccountRepository, actor: Identity, payload: AccountCreate
) -> Account:
    authorize(actor, Action.CREATE_ACCOUNT)
    await _ensure_email_free(repo, payload.email)
    await ensure_actor_exists(repo, actor)

    fields = payload.model_dump(exclude={"password", "auto_approve", "feature_flags"})
    if payload.role == Role.ADMIN and payload.feature_flags is not None:
        fields["feature_flags"] = payload.feature_flags.model_dump()
    fields.update(initial_approval(payload.role, actor.id, payload.auto_approve))

    account = await repo.create(hashed_password=get_password_hash(payload.password), **fields)
    logger.info("Account %s (%s) created by %s", account.email, account.role, actor.email)
    return account


async def register_vendor(
    repo: AccountRepository,
    notifier: Notifier,
    tasks: BackgroundTasks,
    payload: VendorRegistration,
) -> Account:
    """Self-registration: always a VENDOR, always pending."""
    await _ensure_email_free(repo, payload.email)
    fields = payload.model_dump(exclude={"password"})
    fields.update(initial_approval(Role.VENDOR, None))
    account = await repo.create(
        hashed_password=get_password_hash(payload.password),
        role=Role.VENDOR,
        **fields,
    )
    recipients = [a.email for a in await repo.list_notification_recipients()]
    tasks.add_task(
        dispatch_notification, notifier.notify_admin_of_new_vendor, account, recipients
    )
    logger.info("Vendor %s registered, awaiting approval", account.email)
    return account


# ── Updates ─────────────────────────────────────────────────────────
async def update_account(
    repo: AccountRepository,
    actor: Identity,
    account_id: int,
    changes: dict[str, Any],
) -> Account:
    """Apply *changes* to an account, all or nothing.

    Non super admins may only send self-service fields for their own
    record; a single restricted field rejects the whole request.
    """
    authorize_field_update(actor, account_id, changes.keys())
    if actor.role != Role.SUPER_ADMIN:
        authorize(actor, Action.UPDATE_SELF, account_id)
        payload: SelfUpdate = parse_payload(SelfUpdate, changes)
    else:
        authorize(actor, Action.UPDATE_ACCOUNT, account_id)
        payload = parse_payload(AccountUpdate, changes)

    account = await _get_or_404(repo, account_id)
    values = {
        k: v
        for k, v in payload.model_dump(exclude_unset=True).items()
        if not (v is None and k in _REQUIRED_COLUMNS)
    }

    if isinstance(payload, AccountUpdate):
        values.update(await _restricted_values(repo, actor, account, payload, values))

    if not values:
        return account
    updated = await repo.update(account.id, values)
    if updated is None:
        raise NotFound("User not found")
    logger.info("Account %s updated by %s: %s", account.id, actor.email, sorted(values))
    return updated


async def _restricted_values(
    repo: AccountRepository,
    actor: Identity,
    account: Account,
    payload: AccountUpdate,
    values: dict[str, Any],
) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    values.pop("password", None)
    values.pop("feature_flags", None)

    email = values.get("email")
    if email is not None and email != account.email:
        await _ensure_email_free(repo, email)

    if payload.password:
        extra["hashed_password"] = get_password_hash(payload.password)

    current_role = Role(account.role)
    new_role = values.get("role") or current_role
    if new_role != current_role:
        authorize(actor, Action.CHANGE_ROLE, account)
        if account.id == actor.id:
            raise Forbidden("You cannot change your own role")
        # ADMIN and SUPER_ADMIN are approved from the moment they exist.
        if new_role != Role.VENDOR and account.approved_at is None:
            await ensure_actor_exists(repo, actor)
            extra.update(initial_approval(new_role, actor.id))
    else:
        values.pop("role", None)

    if payload.feature_flags is not None:
        authorize(actor, Action.MANAGE_FEATURE_FLAGS, account)
        if new_role != Role.ADMIN:
            raise ValidationFailed(
                "Feature flags are only applicable to ADMIN users",
                {"feature_flags": "Only ADMIN accounts carry feature flags"},
            )
        extra["feature_flags"] = merge(account.feature_flags, payload.feature_flags).model_dump()

    return extra


# ── Deletion ────────────────────────────────────────────────────────
async def delete_account(repo: AccountRepository, actor: Identity, account_id: int) -> None:
    authorize(actor, Action.DELETE_ACCOUNT, account_id)
    account = await _get_or_404(repo, account_id)
    await ensure_actor_exists(repo, actor)
    await repo.delete(account.id, reassign_approvals_to=actor.id)
    logger.info("Account %s (%s) deleted by %s", account.email, account.role, actor.email)


# ── Feature flags ───────────────────────────────────────────────────
async def _admin_target(repo: AccountRepository, actor: Identity, account_id: int) -> Account:
    authorize(actor, Action.MANAGE_FEATURE_FLAGS, account_id)
    account = await _get_or_404(repo, account_id)
    if account.role != Role.ADMIN:
        raise ValidationFailed(
            "Feature flags are only applicable to ADMIN users",
            {"role": "Target account is not an ADMIN"},
        )
    return account


async def get_feature_flags(
    repo: AccountRepository, actor: Identity, account_id: int
) -> tuple[Account, FeatureFlags]:
    account = await _admin_target(repo, actor, account_id)
    return account, effective_flags(account)


async def update_feature_flags(
    repo: AccountRepository,
    actor: Identity,
    account_id: int,
    update: FeatureFlagsUpdate,
) -> Account:
    account = await _admin_target(repo, actor, account_id)
    flags = merge(account.feature_flags, update)
    updated = await repo.update(account.id, {"feature_flags": flags.model_dump()})
    if updated is None:
        raise NotFound("User not found")
    logger.info("Feature flags for %s set to %s by %s", account.email, flags.model_dump(), actor.email)
    return updated
