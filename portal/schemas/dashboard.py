"""Pydantic schemas for role dashboards and system endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from portal.policy.approval import ApprovalStatus
from portal.schemas.account import AccountRead
from portal.schemas.feature_flags import FeatureFlags


class VendorDashboard(BaseModel):
    account: AccountRead
    approval_status: ApprovalStatus


class AdminDashboard(BaseModel):
    account: AccountRead
    feature_flags: FeatureFlags
    enabled_features: list[str]
    pending_vendors: int | None = None  # only with manage_vendors


class SuperAdminDashboard(BaseModel):
    account: AccountRead
    accounts_by_role: dict[str, int]
    pending_vendors: int


class HealthResponse(BaseModel):
    db: bool
    version: str
