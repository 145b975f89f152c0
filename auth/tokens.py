"""
auth/tokens.py -- JWT issuance/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (user id), email, type ("access" | "refresh"), jti, iat and exp.
       decode_token() raises TokenExpired when only the expiry failed and
       TokenInvalid for every other problem (bad signature, malformed token,
       wrong type), so the refresh endpoint can tell the two apart.

       The type claim keeps the two kinds apart: a refresh token is never
       accepted by the Auth Guard and an access token is never accepted by
       /refresh-token. The random jti makes every issued token unique, so a
       rotated pair always differs from the previous one.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether an email is registered.

  SECRET_KEY: sourced from core.config.get_settings() once at import. The
       Settings class validates the key at startup.

Layer rule: no imports from api/ or resources/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from core.config import get_settings
from core.errors import TokenExpired, TokenInvalid

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("campusinfo.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"

_LIFETIMES: dict[str, int] = {
    ACCESS: _settings.access_token_expire_seconds,
    REFRESH: _settings.refresh_token_expire_seconds,
}

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt silently truncates input beyond 72 bytes. The API layer caps
    passwords at 72 characters (Pydantic field) to stay below that threshold.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("campusinfo_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Return the User whose password matches, or None.

    Always runs bcrypt whether or not the email exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Verification state is NOT checked here. The caller decides how an
    unverified account is reported.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def token_lifetime(kind: str) -> int:
    """Return the lifetime in seconds for a token kind."""
    try:
        return _LIFETIMES[kind]
    except KeyError:
        raise ValueError(f"Unknown token kind: {kind!r}") from None


def create_token(user_id: int, email: str, kind: str = ACCESS, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for a user.

    Args:
        user_id:        Numeric user ID, stored as the sub claim.
        email:          Stored for convenience; identity is resolved from sub.
        kind:           "access" or "refresh"; selects the default lifetime.
        expire_seconds: Override the lifetime. Negative values produce an
                        already-expired token (used by tests).
    """
    duration = expire_seconds if expire_seconds != 0 else token_lifetime(kind)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "type": kind,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_token(token: str, kind: str = ACCESS) -> dict:
    """Verify a JWT of the expected kind and return its payload.

    Raises:
        TokenExpired: signature is valid but exp has passed.
        TokenInvalid: anything else -- bad signature, malformed token,
                      missing claims, or a token of the other kind.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except JWTError as exc:
        raise TokenInvalid() from exc
    if payload.get("type") != kind or not str(payload.get("sub", "")).isdigit():
        raise TokenInvalid()
    return payload


def token_user_id(payload: dict) -> int:
    """Return the numeric user id carried in a decoded payload."""
    return int(payload["sub"])
