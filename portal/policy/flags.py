"""
Feature flags as seen by the policy layer.

Only ADMIN accounts carry flags.  SUPER_ADMIN implicitly holds every
capability and VENDOR holds none, whatever happens to be stored.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from portal.models.account import Role
from portal.schemas.feature_flags import FeatureFlags, FeatureFlagsUpdate

CAPABILITIES: tuple[str, ...] = tuple(FeatureFlags.model_fields)

CAPABILITY_LABELS = {
    "manage_vendors": "Manage Vendors",
    "manage_products": "Manage Products",
    "manage_orders": "Manage Orders",
}


def default_flags() -> FeatureFlags:
    return FeatureFlags()


def _coerce(flags: FeatureFlags | Mapping[str, Any] | None) -> FeatureFlags | None:
    if flags is None or isinstance(flags, FeatureFlags):
        return flags
    return FeatureFlags.model_validate(dict(flags))


def effective_flags(account: Any) -> FeatureFlags:
    """Stored flags of an ADMIN account, or the all-false defaults."""
    if account.role != Role.ADMIN:
        raise ValueError("Feature flags are only applicable to ADMIN users")
    return _coerce(account.feature_flags) or default_flags()


def merge(
    existing: FeatureFlags | Mapping[str, Any] | None,
    update: FeatureFlagsUpdate,
) -> FeatureFlags:
    """Shallow key-wise overwrite of *existing* by the keys set in *update*."""
    base = (_coerce(existing) or default_flags()).model_dump()
    for key, value in update.model_dump(exclude_unset=True).items():
        if value is not None:
            base[key] = value
    return FeatureFlags(**base)


def has_capability(role: Role, flags: FeatureFlags | None, capability: str) -> bool:
    if capability not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {capability}")
    if role == Role.SUPER_ADMIN:
        return True
    if role != Role.ADMIN or flags is None:
        return False
    return getattr(flags, capability) is True


def enabled_features(flags: FeatureFlags | None) -> list[str]:
    if flags is None:
        return []
    return [name for name in CAPABILITIES if getattr(flags, name)]
