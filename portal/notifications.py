"""
Notification collaborator.

The portal only decides *who* is told *what*; delivery belongs to a
``Notifier`` implementation.  The default ``LoggingNotifier`` renders
each message and writes it to the log.  Notifications are always sent
through :func:`dispatch_notification`, which never lets a delivery
failure reach the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from portal.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: tuple[str, ...]
    subject: str
    body: str


class Notifier(Protocol):
    def notify_vendor_approved(self, account: Any) -> None: ...

    def notify_vendor_rejected(self, account: Any, reason: str | None = None) -> None: ...

    def notify_admin_of_new_vendor(self, account: Any, recipients: Sequence[str]) -> None: ...

    def notify_password_reset(self, account: Any, reset_link: str) -> None: ...


def vendor_approved_message(account: Any) -> EmailMessage:
    company = f" ({account.company_name})" if account.company_name else ""
    return EmailMessage(
        to=(account.email,),
        subject="Your Vendor Account Has Been Approved",
        body=(
            f"Hello {account.name}{company}, your vendor account has been approved. "
            f"You can now sign in at {settings.APP_BASE_URL}/signin."
        ),
    )


def vendor_rejected_message(account: Any, reason: str | None = None) -> EmailMessage:
    body = f"Hello {account.name}, your vendor account approval has been withdrawn."
    if reason:
        body += f" Reason: {reason}."
    body += f" Contact us at {settings.APP_BASE_URL}/contact."
    return EmailMessage(
        to=(account.email,),
        subject="Update on Your Vendor Application",
        body=body,
    )


def new_vendor_message(account: Any, recipients: Sequence[str]) -> EmailMessage:
    return EmailMessage(
        to=tuple(recipients),
        subject="New Vendor Signup - Approval Required",
        body=(
            f"{account.name} <{account.email}> registered for "
            f"{account.company_name or 'an unnamed company'}. "
            f"Review pending vendors at {settings.APP_BASE_URL}/admin/vendor-management."
        ),
    )


def password_reset_message(account: Any, reset_link: str) -> EmailMessage:
    return EmailMessage(
        to=(account.email,),
        subject="Reset Your Password",
        body=(
            f"Hello {account.name}, use this link to choose a new password: {reset_link} "
            f"(expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes)."
        ),
    )


class LoggingNotifier:
    """Renders messages and logs them instead of sending mail."""

    def _send(self, message: EmailMessage) -> None:
        # Bodies may carry reset links, keep them out of INFO logs.
        logger.info("Email to %s: %s", ", ".join(message.to), message.subject)
        logger.debug("Email body: %s", message.body)

    def notify_vendor_approved(self, account: Any) -> None:
        self._send(vendor_approved_message(account))

    def notify_vendor_rejected(self, account: Any, reason: str | None = None) -> None:
        self._send(vendor_rejected_message(account, reason))

    def notify_admin_of_new_vendor(self, account: Any, recipients: Sequence[str]) -> None:
        if not recipients:
            logger.warning("No recipients for new vendor alert (%s)", account.email)
            return
        self._send(new_vendor_message(account, recipients))

    def notify_password_reset(self, account: Any, reset_link: str) -> None:
        self._send(password_reset_message(account, reset_link))


def dispatch_notification(send: Callable[..., Any], *args: Any) -> None:
    """Fire-and-forget: run *send*, logging instead of raising on failure."""
    try:
        send(*args)
    except Exception:
        logger.exception("Notification %s failed", getattr(send, "__name__", send))


_default_notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency — the process-wide notifier."""
    return _default_notifier
