"""
auth/tokens.py -- JWT bearer tokens, password hashing, and credential checks.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id and an expiry 12
       hours out (Settings.token_expire_seconds). Verification returns None on
       any failure -- the dependency layer turns that into a 401.

  Signing key: owned by a TokenService instance built from Settings in the
       application lifespan. Nothing in this module reads configuration at
       import time, so two apps with different keys can coexist in one
       process (the test suite relies on this).

  Passwords: bcrypt directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether an email is registered.

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("taskboard.auth")

_ALGORITHM = "HS256"

# Name of the httpOnly cookie mirrored onto login/register responses.
AUTH_COOKIE = "token"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are silently truncated by bcrypt. The API
    layer caps password length at 72 characters to stay under that limit for
    ASCII input.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash or over-long password on bcrypt >= 4.1.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("taskboard_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        logger.info("Failed login attempt for unregistered email")
        return None
    if not verify_password(password, user.hashed_password):
        logger.info("Failed login attempt for user %d", user.id)
        return None
    return user


# ---------------------------------------------------------------------------
# Bearer tokens
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed bearer tokens.

    Usage:
        tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
        token = tokens.issue(user.id)
        tokens.verify(token)   # -> user.id, or None
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, user_id: int) -> str:
        """Encode a JWT for user_id that expires expire_seconds from now."""
        expire = datetime.now(timezone.utc) + timedelta(seconds=self.expire_seconds)
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "exp": expire,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int | None:
        """Return the user id encoded in token, or None.

        None covers a bad signature, a malformed token, an expired token, and
        a payload without an integer user_id. Whether that id still names a
        user is the caller's check.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            return None
        user_id = payload.get("user_id")
        if not isinstance(user_id, int):
            return None
        return user_id


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, max_age: int, secure: bool = False) -> None:
    """Mirror the bearer token into an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="strict": never sent on cross-site requests.
    max_age: matches the JWT expiry so both expire together.
    """
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=max_age,
    )
