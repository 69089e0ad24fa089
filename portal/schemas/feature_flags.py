"""Pydantic schemas for admin feature flags.

The capability set is closed: unknown keys are rejected at validation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FeatureFlags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    manage_vendors: bool = False
    manage_products: bool = False
    manage_orders: bool = False


class FeatureFlagsUpdate(BaseModel):
    """Partial update: only the keys that are sent get overwritten."""

    model_config = ConfigDict(extra="forbid")

    manage_vendors: bool | None = None
    manage_products: bool | None = None
    manage_orders: bool | None = None


class FeatureFlagsRead(BaseModel):
    user_id: int
    user_name: str
    feature_flags: FeatureFlags
    enabled: list[str]
    labels: dict[str, str]
