"""
Shared test fixtures for the vendor portal test suite.

Each test gets its own in-memory database (aiosqlite + StaticPool) wired
into the app through a ``get_db`` override.
"""

import os
import sys
from datetime import datetime, timezone
from typing import Any, AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from portal.api.v1.deps import get_db
from portal.core.security import get_password_hash, issue_session_token
from portal.db.base import Base
from portal.main import app
from portal.models.account import Account, Role
from portal.notifications import get_notifier
from portal.repository import AccountRepository
from portal.services.credentials import identity_of

DEFAULT_PASSWORD = "password123"


@pytest.fixture(autouse=True)
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test, injected into the app."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory

    app.dependency_overrides.pop(get_db, None)
    await test_engine.dispose()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(db_session: AsyncSession) -> AccountRepository:
    return AccountRepository(db_session)


# ── Accounts ────────────────────────────────────────────────────────
@pytest.fixture
def make_account(repo: AccountRepository):
    """Factory: insert an account straight into the database."""
    counter = {"n": 0}

    async def _approver() -> Account:
        recipients = await repo.list_notification_recipients()
        if recipients:
            return recipients[0]
        return await _make(Role.SUPER_ADMIN)

    async def _make(
        role: Role = Role.VENDOR,
        *,
        approved: bool = True,
        approved_by_id: int | None = None,
        password: str = DEFAULT_PASSWORD,
        **fields: Any,
    ) -> Account:
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("name", f"{role.value.title()} {n}")
        fields.setdefault("email", f"{role.value.lower()}{n}@example.com")
        if role == Role.VENDOR:
            fields.setdefault("company_name", f"Company {n}")
        if approved and role == Role.VENDOR and approved_by_id is None:
            approved_by_id = (await _approver()).id
        if approved and approved_by_id is not None:
            # Admins without a creator carry no stamp, like the seeded super admin.
            fields["approved_at"] = datetime.now(timezone.utc)
            fields["approved_by_id"] = approved_by_id
        return await repo.create(
            role=role,
            hashed_password=get_password_hash(password),
            **fields,
        )

    return _make


@pytest.fixture
async def super_admin(make_account) -> Account:
    return await make_account(Role.SUPER_ADMIN, name="Root", email="root@example.com")


def auth_headers(account: Account) -> dict[str, str]:
    """Bearer header carrying a session token for *account*."""
    return {"Authorization": f"Bearer {issue_session_token(identity_of(account))}"}


# ── Notifications ───────────────────────────────────────────────────
class RecordingNotifier:
    """Keeps every notification instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, tuple]] = []

    def notify_vendor_approved(self, account) -> None:
        self.sent.append(("vendor_approved", (account.email,)))

    def notify_vendor_rejected(self, account, reason=None) -> None:
        self.sent.append(("vendor_rejected", (account.email, reason)))

    def notify_admin_of_new_vendor(self, account, recipients) -> None:
        self.sent.append(("new_vendor", (account.email, tuple(sorted(recipients)))))

    def notify_password_reset(self, account, reset_link) -> None:
        self.sent.append(("password_reset", (account.email, reset_link)))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.sent]


class FailingNotifier:
    """Every delivery blows up."""

    def _fail(self, *args, **kwargs) -> None:
        raise RuntimeError("SMTP unavailable")

    notify_vendor_approved = _fail
    notify_vendor_rejected = _fail
    notify_admin_of_new_vendor = _fail
    notify_password_reset = _fail


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def failing_notifier():
    failing = FailingNotifier()
    app.dependency_overrides[get_notifier] = lambda: failing
    yield failing
    app.dependency_overrides.pop(get_notifier, None)
