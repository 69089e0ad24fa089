"""
Credential verification, session refresh and password reset.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

from fastapi import BackgroundTasks

from portal.core.config import settings
from portal.core.errors import InvalidCredentials, PendingApproval, Unauthenticated, ValidationFailed
from portal.core.security import (
    burn_password_check,
    create_password_reset_token,
    decode_password_reset_token,
    get_password_hash,
    reset_token_matches,
    verify_password,
)
from portal.models.account import Account, Role
from portal.notifications import Notifier, dispatch_notification
from portal.policy.approval import can_authenticate
from portal.policy.flags import effective_flags
from portal.repository import AccountRepository
from portal.schemas.token import Identity

logger = logging.getLogger(__name__)

_INVALID_RESET = "Invalid or expired password reset link"


def identity_of(account: Account) -> Identity:
    """Identity projection carried by session tokens."""
    role = Role(account.role)
    return Identity(
        id=account.id,
        email=account.email,
        name=account.name,
        role=role,
        feature_flags=effective_flags(account) if role == Role.ADMIN else None,
    )


async def authenticate(repo: AccountRepository, email: str, password: str) -> Identity:
    """Verify *email*/*password* and return the caller's identity.

    The approval gate is checked only once the password is known to be
    right, so a wrong password never reveals that an account is pending.
    """
    account = await repo.find_by_email(email)
    if account is None:
        burn_password_check(password)
        logger.info("Failed login for %s", email.strip().lower())
        raise InvalidCredentials()

    if not verify_password(password, account.hashed_password):
        logger.info("Failed login for %s", account.email)
        raise InvalidCredentials()

    if not can_authenticate(account):
        logger.info("Login blocked, vendor %s pending approval", account.email)
        raise PendingApproval()

    account = await repo.update(account.id, {"last_login_at": datetime.now(timezone.utc)})
    if account is None:
        raise InvalidCredentials()
    logger.info("Login: %s (%s)", account.email, account.role)
    return identity_of(account)


async def refresh_identity(repo: AccountRepository, identity: Identity) -> Identity:
    """Rebuild an identity from the stored account (picks up new flags)."""
    account = await repo.get(identity.id)
    if account is None:
        raise Unauthenticated()
    if not can_authenticate(account):
        raise PendingApproval()
    return identity_of(account)


async def request_password_reset(
    repo: AccountRepository,
    notifier: Notifier,
    tasks: BackgroundTasks,
    email: str,
) -> None:
    """Send a reset link if *email* belongs to an account.

    Returns the same way either way so callers cannot probe for accounts.
    """
    account = await repo.find_by_email(email)
    if account is None:
        logger.info("Password reset requested for unknown email")
        return
    token = create_password_reset_token(account.id, account.hashed_password)
    link = f"{settings.APP_BASE_URL}/reset-password?{urlencode({'token': token})}"
    tasks.add_task(dispatch_notification, notifier.notify_password_reset, account, link)
    logger.info("Password reset link issued for account %s", account.id)


async def complete_password_reset(
    repo: AccountRepository, token: str, new_password: str
) -> Account:
    payload = decode_password_reset_token(token)
    if payload is None:
        raise ValidationFailed(_INVALID_RESET, {"token": _INVALID_RESET})
    try:
        account_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise ValidationFailed(_INVALID_RESET, {"token": _INVALID_RESET}) from None

    account = await repo.get(account_id)
    if account is None or not reset_token_matches(payload, account.hashed_password):
        raise ValidationFailed(_INVALID_RESET, {"token": _INVALID_RESET})

    updated = await repo.update(account.id, {"hashed_password": get_password_hash(new_password)})
    if updated is None:
        raise ValidationFailed(_INVALID_RESET, {"token": _INVALID_RESET})
    logger.info("Password reset completed for account %s", account.id)
    return updated
