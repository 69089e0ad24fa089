"""
Role policy — every authorization decision in the portal goes through here.

All functions are pure: they look only at their arguments, so the whole
decision table can be unit tested without a database or a request.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Any

from portal.core.errors import Forbidden
from portal.models.account import Role
from portal.policy.flags import has_capability
from portal.schemas.token import Identity

ROLE_ROUTE_PREFIXES: dict[Role, str] = {
    Role.VENDOR: "/vendor",
    Role.ADMIN: "/admin",
    Role.SUPER_ADMIN: "/superadmin",
}

_DASHBOARDS: dict[Role, str] = {
    Role.VENDOR: "/vendor/dashboard",
    Role.ADMIN: "/admin/dashboard",
    Role.SUPER_ADMIN: "/superadmin/dashboard",
}

SELF_SERVICE_FIELDS = frozenset(
    {"name", "company_name", "phone_number", "address", "website", "tax_id"}
)
RESTRICTED_FIELDS = frozenset(
    {
        "role",
        "feature_flags",
        "approved_at",
        "approved_by_id",
        "designation",
        "password",
        "email",
    }
)


class Action(str, enum.Enum):
    VIEW_SELF = "view_self"
    UPDATE_SELF = "update_self"
    LIST_ACCOUNTS = "list_accounts"
    VIEW_ACCOUNT = "view_account"
    CREATE_ACCOUNT = "create_account"
    UPDATE_ACCOUNT = "update_account"
    DELETE_ACCOUNT = "delete_account"
    CHANGE_ROLE = "change_role"
    MANAGE_FEATURE_FLAGS = "manage_feature_flags"
    LIST_VENDORS = "list_vendors"
    APPROVE_VENDOR = "approve_vendor"
    REVOKE_VENDOR = "revoke_vendor"


VENDOR_MANAGEMENT = frozenset(
    {Action.LIST_VENDORS, Action.APPROVE_VENDOR, Action.REVOKE_VENDOR}
)
SUPER_ADMIN_ONLY = frozenset(
    {
        Action.LIST_ACCOUNTS,
        Action.VIEW_ACCOUNT,
        Action.CREATE_ACCOUNT,
        Action.UPDATE_ACCOUNT,
        Action.DELETE_ACCOUNT,
        Action.CHANGE_ROLE,
        Action.MANAGE_FEATURE_FLAGS,
    }
)


def dashboard_for(role: Role | str | None) -> str:
    try:
        return _DASHBOARDS[Role(role)]
    except ValueError:
        return "/signin"


def route_role(path: str) -> Role | None:
    """The role owning *path*, or ``None`` when the path is not role-prefixed."""
    for role, prefix in ROLE_ROUTE_PREFIXES.items():
        if path.startswith(prefix):
            return role
    return None


def can_access_route(role: Role, path: str) -> bool:
    # Exact match: SUPER_ADMIN does not inherit /admin or /vendor.
    owner = route_role(path)
    return owner is None or owner == role


def _target_id(target: Any) -> int | None:
    if target is None:
        return None
    if isinstance(target, int):
        return target
    return getattr(target, "id", None)


def can_perform(actor: Identity, action: Action, target: Any = None) -> bool:
    """Decide whether *actor* may run *action* against *target*.

    *target* is an account (or its id) for per-record actions and may be
    omitted for collection-level ones.
    """
    target_id = _target_id(target)
    is_self = target_id is not None and target_id == actor.id

    if action in (Action.VIEW_SELF, Action.UPDATE_SELF):
        return target_id is None or is_self

    if action == Action.DELETE_ACCOUNT and is_self:
        return False

    if action in SUPER_ADMIN_ONLY:
        return actor.role == Role.SUPER_ADMIN

    if action in VENDOR_MANAGEMENT:
        return has_capability(actor.role, actor.feature_flags, "manage_vendors")

    return False


def authorize(actor: Identity, action: Action, target: Any = None) -> None:
    """Raise :class:`Forbidden` unless :func:`can_perform` allows it."""
    if can_perform(actor, action, target):
        return
    if action == Action.DELETE_ACCOUNT and _target_id(target) == actor.id:
        raise Forbidden("You cannot delete your own account")
    raise Forbidden()


def authorize_field_update(actor: Identity, target_id: int, fields: Iterable[str]) -> None:
    """Reject the whole update unless *actor* may set every named field.

    SUPER_ADMIN may set anything on any record.  Everybody else may only
    touch self-service fields on their own record.
    """
    fields = set(fields)
    if actor.role == Role.SUPER_ADMIN:
        return
    if target_id != actor.id:
        raise Forbidden()
    restricted = sorted(fields & RESTRICTED_FIELDS)
    if restricted:
        raise Forbidden(f"You may not change: {', '.join(restricted)}")
