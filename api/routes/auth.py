"""
api/routes/auth.py -- Registration, OTP and session endpoints.

Routes:
  POST /register       -- create unverified account, mail OTP         201
  POST /resend-otp     -- replace and re-mail the OTP                 200
  POST /verify-otp     -- consume OTP, mark account verified          200
  POST /login          -- verified accounts get access + refresh      200
  POST /refresh-token  -- rotate a refresh token into a new pair      200
  GET  /me             -- current account (requires bearer token)     200

Handlers stay thin: AuthService raises core.errors.AppError subclasses and the
exception handler in api/main.py turns them into the ErrorResponse envelope.

Security:
  /login is rate-limited by LOGIN_RATE_LIMIT; /register and /resend-otp by
  OTP_RATE_LIMIT, since each call sends an email.
  Login and refresh responses carry Cache-Control: no-store.
  The OTP value never appears in any response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserSummary,
    VerifyOtpRequest,
)
from auth.dependencies import get_current_user
from auth.models import User
from auth.service import AuthService, TokenPair
from auth.tokens import ACCESS, token_lifetime
from core.config import get_settings
from core.errors import TokenInvalid

# Auth policy:
# - POST /register, /resend-otp, /verify-otp, /login, /refresh-token: public
# - GET  /me: requires a bearer access token (get_current_user)
router = APIRouter()

_settings = get_settings()


def _auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _token_payload(pair: TokenPair) -> dict:
    return {
        "access_token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "expires_in": token_lifetime(ACCESS),
    }


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Registration and OTP
# ---------------------------------------------------------------------------


@limiter.limit(_settings.otp_rate_limit)
@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: Request, body: RegisterRequest) -> MessageResponse:
    """Create an unverified account and email a 6-digit OTP.

    The response confirms the email was sent; it never contains the code.
    """
    await _auth_service(request).register(body.email, body.password, body.profile)
    return MessageResponse(message="User registered. OTP sent to email for verification.")


@limiter.limit(_settings.otp_rate_limit)
@router.post("/resend-otp", response_model=MessageResponse)
async def resend_otp(request: Request, body: EmailRequest) -> MessageResponse:
    """Issue a fresh OTP for a pending account. Any previous code stops working."""
    await _auth_service(request).resend_otp(body.email)
    return MessageResponse(message="New OTP sent successfully.")


@router.post("/verify-otp", response_model=MessageResponse)
def verify_otp(request: Request, body: VerifyOtpRequest) -> MessageResponse:
    """Confirm the emailed OTP. The code is single-use."""
    _auth_service(request).verify_otp(body.email, body.otp)
    return MessageResponse(message="Email verified successfully. You can now log in.")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@limiter.limit(_settings.login_rate_limit)
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return an access + refresh pair.

    Unknown email and wrong password produce the same invalid_credentials
    error. Unverified accounts get not_verified.
    """
    user, pair = _auth_service(request).login(body.email, body.password)
    content = LoginResponse(
        **_token_payload(pair),
        user=UserSummary(id=user.id, email=user.email),
    ).model_dump(by_alias=True)
    return _no_store(JSONResponse(status_code=200, content=content))


@router.post("/refresh-token", response_model=TokenResponse)
def refresh_token(request: Request, body: RefreshRequest) -> JSONResponse:
    """Trade a refresh token for a new access + refresh pair."""
    if not body.refresh_token:
        raise TokenInvalid("Refresh token is required.")
    pair = _auth_service(request).refresh(body.refresh_token)
    content = TokenResponse(**_token_payload(pair)).model_dump(by_alias=True)
    return _no_store(JSONResponse(status_code=200, content=content))


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return the account behind the bearer token."""
    return MeResponse.from_user(current_user)
