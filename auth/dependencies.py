"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The Auth Guard: every entity route depends on get_current_user(), which reads
the Authorization: Bearer <token> header, verifies it as an ACCESS token and
resolves the account. Any failure raises a 401 AppError before the route
handler runs.

Layer rule: no imports from api/ or resources/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import User
from auth.service import AuthService
from core.errors import TokenInvalid, UserNotFound


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request) -> User:
    """Require a valid access token. Raises TokenExpired / TokenInvalid (401).

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise TokenInvalid("Authentication required.")
    auth_service: AuthService = request.app.state.auth_service
    try:
        return auth_service.current_user(token)
    except UserNotFound as exc:
        # The account behind a correctly signed token is gone; to the client
        # this is simply an unusable token.
        raise TokenInvalid() from exc
