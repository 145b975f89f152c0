"""
core/errors.py -- Application error taxonomy.

Every failure the auth flow or the resource controllers can report is one of
these classes. Each carries the HTTP status and the machine-readable code the
API returns, so api/main.py needs a single exception handler to turn any of
them into the standard ErrorResponse envelope.

Services raise these; route handlers let them propagate.

Layer rule: core/ is the kernel. No imports from api/, auth/, or resources/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        self.detail = detail


# ---------------------------------------------------------------------------
# 400
# ---------------------------------------------------------------------------


class ValidationFailed(AppError):
    """Payload rejected by a schema check.

    errors holds every failing field at once ({"field": ..., "message": ...}),
    never just the first one.
    """

    status_code = 400
    code = "validation_failed"
    message = "Validation error."

    def __init__(self, errors: list[dict[str, str]], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class DuplicateUser(AppError):
    status_code = 400
    code = "duplicate_user"
    message = "User already exists."


class AlreadyVerified(AppError):
    status_code = 400
    code = "already_verified"
    message = "Email is already verified."


class OTPNotFound(AppError):
    status_code = 400
    code = "otp_not_found"
    message = "No active OTP for this email. Request a new one."


class OTPMismatch(AppError):
    status_code = 400
    code = "otp_mismatch"
    message = "Invalid OTP."


# ---------------------------------------------------------------------------
# 401
# ---------------------------------------------------------------------------


class InvalidCredentials(AppError):
    # Same message for unknown email and wrong password.
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid email or password."


class NotVerified(AppError):
    status_code = 401
    code = "not_verified"
    message = "Email not verified. Please verify your OTP first."


class TokenExpired(AppError):
    status_code = 401
    code = "token_expired"
    message = "Token expired."


class TokenInvalid(AppError):
    status_code = 401
    code = "token_invalid"
    message = "Invalid token."


# ---------------------------------------------------------------------------
# 404 / 409
# ---------------------------------------------------------------------------


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Record not found."


class UserNotFound(NotFound):
    code = "user_not_found"
    message = "User not found."


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    message = "A record with that identity already exists."


# ---------------------------------------------------------------------------
# 500
# ---------------------------------------------------------------------------


class MailDeliveryFailed(AppError):
    status_code = 500
    code = "mail_delivery_failed"
    message = "Could not deliver email. Please try again."


class StoreError(AppError):
    status_code = 500
    code = "store_error"
    message = "Storage operation failed. Please try again."
