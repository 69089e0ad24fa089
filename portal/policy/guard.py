"""
Route guard decisions for page requests.

``decide`` is evaluated for every incoming request by the middleware in
``portal.middleware``; the first matching rule wins.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import urlencode

from portal.core.config import settings
from portal.policy.roles import can_access_route, dashboard_for
from portal.schemas.token import Identity

SIGNIN_PATH = "/signin"


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


PASS = GuardDecision()


def _matches(path: str, prefixes: Sequence[str]) -> bool:
    return any(path.startswith(p) for p in prefixes)


def decide(
    path: str,
    identity: Identity | None,
    *,
    public_paths: Sequence[str] | None = None,
    auth_paths: Sequence[str] | None = None,
) -> GuardDecision:
    public_paths = settings.PUBLIC_PATHS if public_paths is None else public_paths
    auth_paths = settings.AUTH_PATHS if auth_paths is None else auth_paths
    is_auth_page = _matches(path, auth_paths)

    # API handlers enforce the role policy themselves.
    if path.startswith("/api") or _matches(path, public_paths):
        return PASS

    if identity is not None and is_auth_page:
        return GuardDecision(dashboard_for(identity.role))

    if identity is None:
        if is_auth_page:
            return PASS
        if path == "/":
            return GuardDecision(SIGNIN_PATH)
        return GuardDecision(f"{SIGNIN_PATH}?{urlencode({'callbackUrl': path})}")

    if not can_access_route(identity.role, path):
        return GuardDecision(dashboard_for(identity.role))

    if path == "/":
        return GuardDecision(dashboard_for(identity.role))

    return PASS
