"""
FastAPI dependencies: database session, repository, session identity.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Optional

from fastapi import Cookie, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import Unauthenticated
from portal.core.security import decode_session_token
from portal.db.session import async_session_factory
from portal.policy.roles import Action, authorize
from portal.repository import AccountRepository
from portal.schemas.token import Identity

SESSION_COOKIE = "session_token"

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_repository(db: AsyncSession = Depends(get_db)) -> AccountRepository:
    return AccountRepository(db)


# ── Session identity ────────────────────────────────────────────────
def token_from_request(header_token: str | None, cookie_value: str | None) -> str | None:
    """Priority: Header > Cookie (cookie is stored as ``Bearer <token>``)."""
    if header_token:
        return header_token
    if cookie_value:
        if cookie_value.startswith("Bearer "):
            return cookie_value.split(" ", 1)[1]
        return cookie_value
    return None


async def get_current_identity(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session_token: Optional[str] = Cookie(default=None),
) -> Identity:
    """Decode the session token from Header OR Cookie.

    No database lookup: the identity (and its flag snapshot) is exactly
    what was embedded when the token was issued.
    """
    final_token = token_from_request(token, session_token)
    if not final_token:
        raise Unauthenticated()

    identity = decode_session_token(final_token)
    if identity is None:
        raise Unauthenticated()
    request.state.identity = identity
    return identity


def require(action: Action) -> Callable[..., Identity]:
    """Dependency factory for collection-level actions (no target record)."""

    async def _check(identity: Identity = Depends(get_current_identity)) -> Identity:
        authorize(identity, action)
        return identity

    return _check
