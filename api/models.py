"""
API request and response models for the campus REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
resources/models.py, which own the internal domain representation. Route
handlers map between the two.

Entity payloads are NOT modelled here: they are free-form JSON objects on v1
and are checked by resources/schemas.py on v2.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.models import User
from resources.models import Page

# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /register.

    profile carries any extra registration fields (names, contact number...).
    Password length is capped at 72 to stay within bcrypt's input limit.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    profile: dict[str, Any] = Field(default_factory=dict)


class EmailRequest(BaseModel):
    """Request body for POST /resend-otp."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr


class VerifyOtpRequest(BaseModel):
    """Request body for POST /verify-otp."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    otp: str = Field(pattern=r"^\d{6}$")


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class RefreshRequest(BaseModel):
    """Request body for POST /refresh-token. Accepts refreshToken or refresh_token."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(default="", alias="refreshToken")


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class UserSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str


class TokenResponse(BaseModel):
    """Response for POST /refresh-token (and the token part of /login)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    token_type: str = Field(default="bearer", alias="tokenType")
    expires_in: int = Field(alias="expiresIn")


class LoginResponse(TokenResponse):
    message: str = "Login successful"
    user: UserSummary


class MeResponse(BaseModel):
    """Response for GET /me."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: str
    is_verified: bool
    profile: dict[str, Any]
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            is_verified=user.is_verified,
            profile=user.profile,
            created_at=user.created_at,
            last_login=user.last_login,
        )


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class PageResponse(BaseModel):
    """Response for GET /api/{v1|v2}/<entity>."""

    model_config = ConfigDict(frozen=True)

    items: list[dict[str, Any]]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def from_page(cls, page: Page) -> "PageResponse":
        return cls(
            items=[doc.to_dict() for doc in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            pages=page.pages,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    errors: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
