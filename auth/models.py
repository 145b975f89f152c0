"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in resources/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered account.

    is_verified is False from registration until the emailed OTP is confirmed.
    Login refuses unverified accounts, so the verification flag is the only
    gate between PendingVerification and Verified.

    profile holds the free-form registration fields (names, contact number,
    ...) that the auth flow stores but never interprets.
    """

    email: str
    hashed_password: str
    id: int | None = None
    role: str = "user"
    is_verified: bool = False
    profile: dict = field(default_factory=dict)
    created_at: str | None = None
    last_login: str | None = None


@dataclass
class OtpRecord:
    """The single live one-time code for an email address.

    expires_at is an absolute epoch timestamp in seconds. A record whose
    expires_at is in the past is treated as absent even if the row still
    exists.
    """

    email: str
    code: str
    expires_at: float
