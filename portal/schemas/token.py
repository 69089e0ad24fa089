"""Pydantic schemas for session tokens and the identity they carry."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from portal.models.account import Role
from portal.schemas.account import check_password
from portal.schemas.feature_flags import FeatureFlags


class Identity(BaseModel):
    """Minimal identity projection embedded in a session token."""

    id: int
    email: str
    name: str
    role: Role
    feature_flags: FeatureFlags | None = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    identity: Identity


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        return check_password(v)
