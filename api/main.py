"""
api/main.py -- FastAPI application entry point for the campus information API.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan handles startup (stores, OTP issuer, mail sender, auth service, OTP
purge task) and shutdown (cancel purge task, close DB connections)
symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, FieldError, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.resources import register_resource_routes
from auth.mailer import build_mail_sender
from auth.otp import OTPIssuer, OTPStore
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError, ValidationFailed
from resources.store import DocumentStore

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("campusinfo.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired OTP rows every OTP_PURGE_INTERVAL_SECONDS.

    Expired codes are already rejected at read time; this only keeps the
    table small. CancelledError from task.cancel() during shutdown propagates
    out of asyncio.sleep and ends the loop.
    """
    while True:
        await asyncio.sleep(_settings.otp_purge_interval_seconds)
        removed = app.state.otp_issuer.purge_expired()
        if removed:
            logger.info("Purged %d expired OTP codes", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores and services on startup, release them on shutdown.

    The auth service depends on the user store, OTP issuer and mail sender,
    so those are built first. The purge task references app.state.otp_issuer
    and is started last.
    """
    logger.info("Campus API starting up")
    app.state.user_store = UserStore()
    app.state.otp_store = OTPStore()
    app.state.otp_issuer = OTPIssuer(app.state.otp_store)
    app.state.mailer = build_mail_sender(_settings)
    app.state.auth_service = AuthService(app.state.user_store, app.state.otp_issuer, app.state.mailer)
    logger.info("Auth initialized (%d users)", app.state.user_store.count_users())
    app.state.documents = DocumentStore()
    logger.info("Document store initialized")
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    app.state.documents.close()
    app.state.otp_store.close()
    app.state.user_store.close()
    logger.info("Campus API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Campus Information API",
    description="Student, faculty, course and library records with email-verified accounts.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
register_resource_routes(app)


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(exclude_none=True),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map any core.errors.AppError onto its status code and error code.

    Server-side failures (5xx) are logged with the traceback; the client only
    sees the generic message for that error class.
    """
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc, exc_info=exc)
    errors = None
    if isinstance(exc, ValidationFailed):
        errors = [FieldError(**err) for err in exc.errors]
    return _error_response(
        exc.status_code,
        ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail, errors=errors),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 listing every field that failed request validation.

    The leading "body"/"query" location segment is dropped so field names
    match the ones a v2 schema check reports.
    """
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        errors.append(FieldError(field=".".join(loc) or "__root__", message=err.get("msg", "Invalid value")))
    return _error_response(
        400,
        ErrorDetail(code=ValidationFailed.code, message=ValidationFailed.message, errors=errors),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 on unknown paths, 405...)."""
    return _error_response(
        exc.status_code,
        ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(
        500,
        ErrorDetail(code="internal_error", message="An unexpected error occurred."),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is reachable regardless of router
# registration. Not rate-limited.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=API_VERSION)
