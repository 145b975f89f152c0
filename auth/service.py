"""
auth/service.py -- Registration, OTP verification, login and token refresh.

AuthService is the state machine behind the auth endpoints:

    Unregistered --register--> PendingVerification --verify_otp--> Verified

  register    creates the unverified account and mails an OTP.
  resend_otp  replaces the live OTP for a pending account.
  verify_otp  consumes the OTP and marks the account verified.
  login       issues an access + refresh pair to verified accounts only.
  refresh     trades a valid refresh token for a new pair (rotation).

Every failure is raised as a core.errors.AppError subclass; the API layer maps
those to HTTP responses. The OTP value is handed to the mail sender and
nowhere else: it is not returned, not logged, not stored outside OTPStore.

Collaborators are injected (UserStore, OTPIssuer, mail sender) so tests can
swap in in-memory stores and a recording mailer.

The async methods await mail delivery on the event loop; bcrypt and database
calls inside them go through run_in_threadpool so a registration never stalls
other requests.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from starlette.concurrency import run_in_threadpool

from auth.models import User
from auth.otp import OTPIssuer
from auth.store import UserStore, normalize_email
from auth.tokens import ACCESS, REFRESH, authenticate_user, create_token, decode_token, hash_password, token_user_id
from core.errors import (
    AlreadyVerified,
    InvalidCredentials,
    NotVerified,
    OTPMismatch,
    OTPNotFound,
    UserNotFound,
)

logger = logging.getLogger("campusinfo.auth.service")

_REGISTER_SUBJECT = "Verify Your Email - OTP Code"
_RESEND_SUBJECT = "Resend OTP Code"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class AuthService:
    """Orchestrates the credential store, OTP issuer, token service and mailer."""

    def __init__(self, users: UserStore, otp: OTPIssuer, mailer) -> None:
        self.users = users
        self.otp = otp
        self.mailer = mailer

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str, profile: dict | None = None) -> User:
        """Create a PendingVerification account and mail its first OTP.

        Raises DuplicateUser if the email is taken, MailDeliveryFailed if the
        OTP could not be sent. The account is kept when mail fails; the user
        can recover with resend_otp().
        """
        email = normalize_email(email)
        hashed = await run_in_threadpool(hash_password, password)
        user = User(email=email, hashed_password=hashed, profile=profile or {})
        user.id = await run_in_threadpool(self.users.create_user, user)
        logger.info("Registered user %d (%s), pending verification", user.id, email)
        await self._send_code(email, _REGISTER_SUBJECT, "Your OTP code is {code}. It will expire in {minutes} minutes.")
        return user

    async def resend_otp(self, email: str) -> None:
        """Replace the live OTP for a pending account and mail the new one."""
        user = await run_in_threadpool(self.users.get_by_email, email)
        if user is None:
            raise UserNotFound()
        if user.is_verified:
            raise AlreadyVerified()
        await self._send_code(
            user.email, _RESEND_SUBJECT, "Your new OTP code is {code}. It will expire in {minutes} minutes."
        )

    def verify_otp(self, email: str, code: str) -> User:
        """Consume the OTP and move the account to Verified.

        OTPNotFound covers both "never issued" and "expired". A mismatch
        leaves the live code in place so the user can retry.
        """
        email = normalize_email(email)
        if self.otp.peek(email) is None:
            raise OTPNotFound()
        if not self.otp.check(email, code):
            # The record may have expired or been consumed between peek and
            # check; report that as absent rather than as a wrong code.
            if self.otp.peek(email) is None:
                raise OTPNotFound()
            raise OTPMismatch()
        user = self.users.get_by_email(email)
        if user is None:
            raise UserNotFound()
        self.users.mark_verified(email)
        user.is_verified = True
        logger.info("User %d verified", user.id)
        return user

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        """Issue a token pair to a verified account.

        Unverified accounts get NotVerified whether or not the password is
        right. Unknown email and wrong password both raise the same
        InvalidCredentials.
        """
        user = self.users.get_by_email(email)
        if user is not None and not user.is_verified:
            raise NotVerified()
        user = authenticate_user(self.users, email, password)
        if user is None:
            raise InvalidCredentials()
        self.users.update_last_login(user.id)
        logger.info("User %d logged in", user.id)
        return user, self._issue_pair(user)

    def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token into a fresh access + refresh pair.

        TokenExpired / TokenInvalid propagate from decode_token();
        UserNotFound if the account behind the token no longer exists.
        """
        payload = decode_token(refresh_token, REFRESH)
        user = self.users.get_by_id(token_user_id(payload))
        if user is None:
            raise UserNotFound()
        return self._issue_pair(user)

    def current_user(self, access_token: str) -> User:
        """Resolve the account behind an access token (used by the Auth Guard)."""
        payload = decode_token(access_token, ACCESS)
        user = self.users.get_by_id(token_user_id(payload))
        if user is None:
            raise UserNotFound()
        return user

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=create_token(user.id, user.email, ACCESS),
            refresh_token=create_token(user.id, user.email, REFRESH),
        )

    async def _send_code(self, email: str, subject: str, template: str) -> None:
        code = await run_in_threadpool(self.otp.issue, email)
        minutes = max(1, self.otp.ttl_seconds // 60)
        await self.mailer.send(email, subject, template.format(code=code, minutes=minutes))
