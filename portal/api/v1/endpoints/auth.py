"""
Auth endpoints — login (OAuth2 password flow), logout, session refresh,
vendor self-registration, password reset and the caller's own profile.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address

from portal.api.v1.deps import (
    SESSION_COOKIE,
    get_current_identity,
    get_repository,
)
from portal.core.config import settings
from portal.core.security import issue_session_token
from portal.notifications import Notifier, get_notifier
from portal.repository import AccountRepository
from portal.schemas.account import (
    AccountRead,
    AccountResponse,
    MessageResponse,
    VendorRegistration,
)
from portal.schemas.token import Identity, PasswordResetConfirm, PasswordResetRequest, Token
from portal.services import accounts, credentials

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])

_RESET_REQUESTED = "If an account exists for that email, a reset link has been sent."


def _session_response(response: Response, identity: Identity) -> Token:
    token = issue_session_token(identity)
    max_age = settings.SESSION_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    response.set_cookie(
        key=SESSION_COOKIE,
        value=f"Bearer {token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=max_age,
    )
    return Token(access_token=token, expires_in=max_age, identity=identity)


@router.post("/login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    repo: AccountRepository = Depends(get_repository),
) -> Token:
    """Authenticate with email/password. Returns the token and sets an HttpOnly cookie."""
    identity = await credentials.authenticate(repo, form_data.username, form_data.password)
    return _session_response(response, identity)


@router.post("/refresh", response_model=Token)
async def refresh_session(
    response: Response,
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> Token:
    """Re-issue the session token from the stored account (fresh feature flags)."""
    fresh = await credentials.refresh_identity(repo, identity)
    return _session_response(response, fresh)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Clear the session cookie."""
    response.delete_cookie(SESSION_COOKIE)
    return MessageResponse(message="Logged out")


@router.post("/register", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def register_vendor(
    request: Request,
    body: VendorRegistration,
    background_tasks: BackgroundTasks,
    repo: AccountRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> AccountResponse:
    """Vendor self-registration. The account stays pending until approved."""
    account = await accounts.register_vendor(repo, notifier, background_tasks, body)
    return AccountResponse(
        message="Registration received. Your account is pending approval.",
        account=AccountRead.model_validate(account),
    )


@router.post("/password-reset/request", response_model=MessageResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def request_password_reset(
    request: Request,
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    repo: AccountRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    await credentials.request_password_reset(repo, notifier, background_tasks, body.email)
    return MessageResponse(message=_RESET_REQUESTED)


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(
    body: PasswordResetConfirm,
    repo: AccountRepository = Depends(get_repository),
) -> MessageResponse:
    await credentials.complete_password_reset(repo, body.token, body.new_password)
    return MessageResponse(
        message="Password reset successful! You can now sign in with your new password."
    )


# ── Own profile ─────────────────────────────────────────────────────
@router.get("/me", response_model=AccountRead)
async def read_me(
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> Any:
    """Return profile of the currently authenticated account."""
    return await accounts.get_account(repo, identity, identity.id)


@router.patch("/me", response_model=AccountResponse)
async def update_me(
    body: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
    repo: AccountRepository = Depends(get_repository),
) -> AccountResponse:
    """Self-service profile update. Restricted fields reject the whole request."""
    account = await accounts.update_account(repo, identity, identity.id, body)
    return AccountResponse(
        message="Profile updated successfully",
        account=AccountRead.model_validate(account),
    )
