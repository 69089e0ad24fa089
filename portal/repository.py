"""Database repository for accounts."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.account import Account, Role
from portal.policy.approval import ApprovalStatus


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    values = dict(fields)
    if isinstance(values.get("role"), Role):
        values["role"] = values["role"].value
    return values


class AccountRepository:
    """SQLAlchemy-backed account persistence.

    Every mutating method commits on its own; multi-column changes are
    issued as a single UPDATE so readers never see a half-applied write.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, account_id: int) -> Account | None:
        result = await self._session.execute(
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Account | None:
        result = await self._session.execute(
            select(Account).where(Account.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> Account:
        account = Account(**_column_values(fields))
        self._session.add(account)
        await self._session.commit()
        await self._session.refresh(account)
        return account

    async def update(
        self,
        account_id: int,
        fields: dict[str, Any],
        *,
        only_if: Any = None,
    ) -> Account | None:
        """Apply *fields* atomically and return the fresh row.

        ``only_if`` adds an extra WHERE clause; when it does not hold no
        row is touched and ``None`` is returned.
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(**_column_values(fields))
            .execution_options(synchronize_session=False)
        )
        if only_if is not None:
            stmt = stmt.where(only_if)
        result = await self._session.execute(stmt)
        await self._session.commit()
        if result.rowcount == 0:
            return None
        return await self.get(account_id)

    async def delete(self, account_id: int, *, reassign_approvals_to: int) -> None:
        # Approvals granted by the deleted account move to the deleting
        # super admin so approved_by_id never dangles.
        await self._session.execute(
            update(Account)
            .where(Account.approved_by_id == account_id)
            .values(approved_by_id=reassign_approvals_to)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(Account)
            .where(Account.id == account_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()

    async def list_accounts(
        self,
        *,
        role: Role | None = None,
        status: ApprovalStatus | None = None,
    ) -> list[Account]:
        stmt = select(Account)
        if role is not None:
            stmt = stmt.where(Account.role == role.value)
        if status == ApprovalStatus.PENDING:
            # Only vendors wait for approval
            stmt = stmt.where(Account.role == Role.VENDOR.value, Account.approved_at.is_(None))
        elif status == ApprovalStatus.APPROVED:
            stmt = stmt.where(Account.approved_at.is_not(None))
        result = await self._session.execute(
            stmt.order_by(Account.created_at.desc(), Account.id.desc())
        )
        return list(result.scalars().all())

    async def list_notification_recipients(self) -> list[Account]:
        """Accounts that should hear about new vendor sign-ups."""
        result = await self._session.execute(
            select(Account).where(Account.role.in_([Role.SUPER_ADMIN.value, Role.ADMIN.value]))
        )
        recipients = []
        for account in result.scalars().all():
            flags = account.feature_flags or {}
            if account.role == Role.SUPER_ADMIN or flags.get("manage_vendors") is True:
                recipients.append(account)
        return recipients

    async def count_by_role(self) -> dict[str, int]:
        result = await self._session.execute(
            select(Account.role, func.count(Account.id)).group_by(Account.role)
        )
        counts = {role.value: 0 for role in Role}
        counts.update({role: total for role, total in result.all()})
        return counts

    async def count_pending_vendors(self) -> int:
        result = await self._session.execute(
            select(func.count(Account.id)).where(
                Account.role == Role.VENDOR.value, Account.approved_at.is_(None)
            )
        )
        return int(result.scalar_one())
