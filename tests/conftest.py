"""
tests/conftest.py -- Shared test fixtures for the campus API tests.

This module provides:
  - OutboxMailer: records messages instead of sending them; tests read OTPs here
  - make_stores(): isolated in-memory DBs for users, OTPs and documents
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a verified user and an access token for it

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import asyncio
import os
import re
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import email_validator
import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.otp import OTPIssuer, OTPStore
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import ACCESS, create_token, hash_password
from core.errors import MailDeliveryFailed
from resources.store import DocumentStore

# Repeated registrations from the same "testclient" address would otherwise
# hit the OTP rate limit partway through a module.
limiter.enabled = False

# Test addresses use the reserved .test domain, which email-validator rejects
# outside a test environment.
email_validator.TEST_ENVIRONMENT = True

_OTP_RE = re.compile(r"\b(\d{6})\b")


# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------


@dataclass
class OutboxMailer:
    """Mail sender that keeps every message in memory."""

    messages: list[tuple[str, str, str]] = field(default_factory=list)
    fail: bool = False

    async def send(self, to_address: str, subject: str, body: str) -> None:
        if self.fail:
            raise MailDeliveryFailed(detail="OutboxMailer.fail")
        self.messages.append((to_address, subject, body))

    def last_code(self, to_address: str) -> str:
        """Return the OTP from the most recent message to to_address."""
        for to, _subject, body in reversed(self.messages):
            if to == to_address:
                match = _OTP_RE.search(body)
                assert match, f"no OTP in message body: {body!r}"
                return match.group(1)
        raise AssertionError(f"no mail sent to {to_address}")


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


@dataclass
class Stores:
    users: UserStore
    otp_store: OTPStore
    otp: OTPIssuer
    documents: DocumentStore
    mailer: OutboxMailer

    @property
    def auth_service(self) -> AuthService:
        return AuthService(self.users, self.otp, self.mailer)

    def close(self) -> None:
        self.documents.close()
        self.otp_store.close()
        self.users.close()


def make_stores(db_suffix: str) -> Stores:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB names so test modules
                   don't share state (e.g. 'api', 'service').
    """

    def url(name: str) -> str:
        return f"sqlite:///file:test_{name}_{db_suffix}?mode=memory&cache=shared&uri=true"

    users = UserStore(db_url=url("users"))
    otp_store = OTPStore(db_url=url("otp"))
    otp = OTPIssuer(otp_store, ttl_seconds=300)
    documents = DocumentStore(db_url=url("documents"))
    return Stores(users=users, otp_store=otp_store, otp=otp, documents=documents, mailer=OutboxMailer())


def create_verified_user(users: UserStore, email: str, password: str) -> int:
    uid = users.create_user(User(email=email, hashed_password=hash_password(password)))
    users.mark_verified(email)
    return uid


def _patch_lifespan(stores: Stores):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = stores.users
        app.state.otp_store = stores.otp_store
        app.state.otp_issuer = stores.otp
        app.state.mailer = stores.mailer
        app.state.auth_service = stores.auth_service
        app.state.documents = stores.documents
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[Stores, None, None]:
    """Fresh stores per test."""
    s = make_stores(uuid.uuid4().hex[:8])
    yield s
    s.close()


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, Stores], None, None]:
    """Yield (client, token, stores) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores. A verified
    user (staff@campus.test / staffpass123) exists before the client starts.
    """
    stores = make_stores(f"api_{uuid.uuid4().hex[:8]}")
    uid = create_verified_user(stores.users, "staff@campus.test", "staffpass123")
    token = create_token(uid, "staff@campus.test", ACCESS, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(stores)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, stores

    stores.close()
