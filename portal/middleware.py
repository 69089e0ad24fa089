"""
Route guard middleware: runs ``portal.policy.guard.decide`` on every
request before routing and turns a redirect decision into a 302.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.security.utils import get_authorization_scheme_param

from portal.api.v1.deps import SESSION_COOKIE, token_from_request
from portal.core.security import decode_session_token
from portal.policy import guard
from portal.schemas.token import Identity

logger = logging.getLogger(__name__)


def identity_from_request(request: Request) -> Identity | None:
    """Best-effort identity from the Authorization header or session cookie.

    Anything unreadable counts as unauthenticated.
    """
    scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
    header_token = param if scheme.lower() == "bearer" else None
    token = token_from_request(header_token, request.cookies.get(SESSION_COOKIE))
    if not token:
        return None
    return decode_session_token(token)


def register_route_guard(app: FastAPI) -> None:
    @app.middleware("http")
    async def route_guard(request: Request, call_next):
        path = request.url.path
        identity = identity_from_request(request)
        decision = guard.decide(path, identity)
        if not decision.allowed:
            logger.debug("Guard redirect %s -> %s", path, decision.redirect_to)
            return RedirectResponse(decision.redirect_to, status_code=302)
        return await call_next(request)
