"""
Account model — authentication, roles, vendor approval & admin feature flags.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from portal.db.base import Base


class Role(str, enum.Enum):
    VENDOR = "VENDOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class Account(Base):
    __tablename__ = "accounts"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=Role.VENDOR.value,
        server_default=Role.VENDOR.value,
        index=True,
    )  # VENDOR | ADMIN | SUPER_ADMIN

    # Approval: both set or both null
    approved_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    approved_by_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("accounts.id"), nullable=True
    )

    # ADMIN only
    feature_flags: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    designation: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]

    # VENDOR profile
    company_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    phone_number: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    address: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    website: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    tax_id: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]

    last_login_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
