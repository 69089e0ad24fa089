"""Pydantic schemas for Account CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from portal.models.account import Role
from portal.schemas.feature_flags import FeatureFlags, FeatureFlagsUpdate

_MAX_LENGTHS = {
    "name": 100,
    "company_name": 200,
    "phone_number": 20,
    "address": 500,
    "tax_id": 50,
    "designation": 100,
}


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain or " " in v:
        raise ValueError("Invalid email address")
    return v


def check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(v) > 100:
        raise ValueError("Password is too long")
    return v


def check_website(v: str | None) -> str | None:
    if v is None or v.strip() == "":
        return None
    v = v.strip()
    if not v.startswith(("http://", "https://")) or len(v) > 500:
        raise ValueError("Invalid URL")
    return v


class _ProfileFields(BaseModel):
    """Length checks shared by every schema carrying profile fields."""

    @model_validator(mode="after")
    def _check_lengths(self):
        for field, limit in _MAX_LENGTHS.items():
            value = getattr(self, field, None)
            if isinstance(value, str) and len(value) > limit:
                raise ValueError(f"{field} must be at most {limit} characters")
        return self


class AccountCreate(_ProfileFields):
    model_config = ConfigDict(extra="forbid")

    name: str
    email: str
    password: str
    role: Role

    company_name: str | None = None
    phone_number: str | None = None
    address: str | None = None
    website: str | None = None
    tax_id: str | None = None
    auto_approve: bool = False

    designation: str | None = None
    feature_flags: FeatureFlags | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)

    @field_validator("website")
    @classmethod
    def _website(cls, v: str | None) -> str | None:
        return check_website(v)

    @field_validator("name")
    @classmethod
    def _require_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @model_validator(mode="after")
    def _role_fields(self):
        if self.role == Role.VENDOR and not self.company_name:
            raise ValueError("Company name is required for vendors")
        if self.feature_flags is not None and self.role != Role.ADMIN:
            raise ValueError("Feature flags are only applicable to ADMIN users")
        return self


class VendorRegistration(_ProfileFields):
    """Public self-registration; always produces a pending VENDOR."""

    model_config = ConfigDict(extra="forbid")

    name: str
    email: str
    password: str
    company_name: str
    phone_number: str | None = None
    address: str | None = None
    website: str | None = None
    tax_id: str | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)

    @field_validator("website")
    @classmethod
    def _website(cls, v: str | None) -> str | None:
        return check_website(v)

    @field_validator("name", "company_name")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field is required")
        return v


class SelfUpdate(_ProfileFields):
    """Fields an account owner may change on their own record."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    company_name: str | None = None
    phone_number: str | None = None
    address: str | None = None
    website: str | None = None
    tax_id: str | None = None

    @field_validator("website")
    @classmethod
    def _website(cls, v: str | None) -> str | None:
        return check_website(v)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Name is required")
        return v.strip() if v is not None else v


class AccountUpdate(SelfUpdate):
    """Super-admin update: any field, password optional."""

    email: str | None = None
    password: str | None = None
    role: Role | None = None
    designation: str | None = None
    feature_flags: FeatureFlagsUpdate | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return normalise_email(v) if v is not None else v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str | None) -> str | None:
        # An empty password means "leave unchanged".
        if v is None or v == "":
            return None
        return check_password(v)


class AccountRead(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    approved_at: datetime | None
    approved_by_id: int | None
    feature_flags: FeatureFlags | None = None
    designation: str | None = None
    company_name: str | None = None
    phone_number: str | None = None
    address: str | None = None
    website: str | None = None
    tax_id: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class AccountResponse(BaseModel):
    success: bool = True
    message: str
    account: AccountRead


class AccountList(BaseModel):
    accounts: list[AccountRead]
    total: int


class DeleteResponse(BaseModel):
    success: bool
    message: str


class MessageResponse(BaseModel):
    message: str
