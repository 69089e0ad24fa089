"""
Session token issuing / decoding and password hashing (bcrypt).

The session token is a signed JWT carrying the identity projection
(id, email, name, role, feature-flag snapshot).  The flag snapshot is
frozen at issue time: an admin whose flags change keeps the old ones
until the next login or an explicit ``/auth/refresh``.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from portal.core.config import settings
from portal.schemas.token import Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY

SESSION_TOKEN_TYPE = "session"
RESET_TOKEN_TYPE = "password_reset"

# Compared against when the email is unknown so a miss costs one bcrypt round too.
_DUMMY_HASH = pwd_context.hash("portal-timing-equaliser")


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def burn_password_check(plain: str) -> None:
    pwd_context.verify(plain, _DUMMY_HASH)


# ── Session tokens ──────────────────────────────────────────────────
def issue_session_token(
    identity: Identity,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS))
    flags = identity.feature_flags.model_dump() if identity.feature_flags else None
    return jwt.encode(
        {
            "sub": str(identity.id),
            "email": identity.email,
            "name": identity.name,
            "role": identity.role.value,
            "flags": flags,
            "type": SESSION_TOKEN_TYPE,
            "iat": now,
            "exp": expire,
        },
        _SECRET,
        algorithm=_ALGORITHM,
    )


def decode_session_token(token: str) -> Identity | None:
    """Return the embedded identity if the token is valid, else ``None``.

    Anything short of a well-formed, unexpired, correctly signed session
    token is treated as unauthenticated.
    """
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != SESSION_TOKEN_TYPE:
        return None
    try:
        return Identity(
            id=int(payload["sub"]),
            email=payload["email"],
            name=payload["name"],
            role=payload["role"],
            feature_flags=payload.get("flags"),
        )
    except (KeyError, TypeError, ValueError, ValidationError):
        logger.warning("Rejected session token with malformed payload")
        return None


# ── Password reset tokens ───────────────────────────────────────────
def _password_fingerprint(hashed_password: str) -> str:
    # Ties a reset token to the password it was issued against: once the
    # password changes, outstanding tokens stop matching.
    return hashlib.sha256(hashed_password.encode("utf-8")).hexdigest()[:16]


def create_password_reset_token(account_id: int, hashed_password: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    return jwt.encode(
        {
            "sub": str(account_id),
            "pwd": _password_fingerprint(hashed_password),
            "type": RESET_TOKEN_TYPE,
            "exp": expire,
        },
        _SECRET,
        algorithm=_ALGORITHM,
    )


def decode_password_reset_token(token: str) -> dict | None:
    """Return payload dict if *reset* token is valid, else ``None``."""
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != RESET_TOKEN_TYPE or "sub" not in payload:
        return None
    return payload


def reset_token_matches(payload: dict, hashed_password: str) -> bool:
    return payload.get("pwd") == _password_fingerprint(hashed_password)
