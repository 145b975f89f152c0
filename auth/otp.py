"""
auth/otp.py -- One-time password issuance and verification.

OTPStore keeps at most one live code per email in a SQL table. Every API
instance that shares DATABASE_URL sees the same codes, so a code issued by one
instance can be verified by another.

Expiry is enforced at read time, not only at cleanup time: every lookup and
the consume statement carry "expires_at > now" in their WHERE clause, so a row
that outlived its TTL is invisible even before purge_expired() removes it.

consume() is a single DELETE whose WHERE clause matches email, code and expiry
together. The database applies it atomically, so two concurrent verifications
of the same code cannot both observe rowcount == 1.

Codes are never logged.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy import Column, Float, MetaData, String, Table
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import OtpRecord
from auth.store import normalize_email
from core.config import get_settings
from core.db import make_engine
from core.errors import StoreError

logger = logging.getLogger("campusinfo.auth.otp")

OTP_LENGTH = 6

_metadata = MetaData()

_otp_codes = Table(
    "otp_codes",
    _metadata,
    Column("email", String(320), primary_key=True),
    Column("code", String(OTP_LENGTH), nullable=False),
    Column("expires_at", Float, nullable=False),  # epoch seconds
)


def generate_code(length: int = OTP_LENGTH) -> str:
    """Return a numeric code drawn uniformly from 0..10**length - 1.

    Zero-padded so "004217" is as likely as "904217".
    """
    return f"{secrets.randbelow(10**length):0{length}d}"


class OTPStore:
    """Repository for OtpRecord rows, keyed by email."""

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    def put(self, record: OtpRecord) -> None:
        """Store record, replacing any existing code for the same email.

        Two concurrent puts for a new email can both find no row to update;
        the loser of the INSERT race retries once as an update, so the last
        writer wins. Raises StoreError on any other database failure.
        """
        email = normalize_email(record.email)
        values = {"code": record.code, "expires_at": record.expires_at}
        try:
            try:
                self._upsert(email, values)
            except IntegrityError:
                self._upsert(email, values)
        except SQLAlchemyError as exc:
            raise StoreError(detail=type(exc).__name__) from exc

    def _upsert(self, email: str, values: dict) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(_otp_codes.update().where(_otp_codes.c.email == email).values(**values))
            if result.rowcount == 0:
                conn.execute(_otp_codes.insert().values(email=email, **values))

    def get_live(self, email: str, now: float) -> OtpRecord | None:
        """Return the unexpired record for email, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _otp_codes.select().where(
                    (_otp_codes.c.email == normalize_email(email)) & (_otp_codes.c.expires_at > now)
                )
            ).fetchone()
        if row is None:
            return None
        return OtpRecord(email=row.email, code=row.code, expires_at=row.expires_at)

    def consume(self, email: str, code: str, now: float) -> bool:
        """Delete the record only if email, code and expiry all match. Atomic."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _otp_codes.delete().where(
                    (_otp_codes.c.email == normalize_email(email))
                    & (_otp_codes.c.code == code)
                    & (_otp_codes.c.expires_at > now)
                )
            )
            conn.commit()
        return result.rowcount == 1

    def purge_expired(self, now: float) -> int:
        """Delete all rows whose expiry has passed. Returns number of rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_otp_codes.delete().where(_otp_codes.c.expires_at <= now))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


class OTPIssuer:
    """Issues and checks one-time codes on top of an OTPStore.

    clock is injectable so tests can move time forward past the TTL without
    sleeping.

    Usage:
        issuer = OTPIssuer(OTPStore())
        code = issuer.issue("a@x.com")      # hand code to the mail sender
        issuer.check("a@x.com", code)       # True once, then False
    """

    def __init__(self, store: OTPStore, ttl_seconds: int | None = None, clock=time.time) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().otp_ttl_seconds
        self.clock = clock

    def issue(self, email: str) -> str:
        code = generate_code()
        self.store.put(OtpRecord(email=email, code=code, expires_at=self.clock() + self.ttl_seconds))
        logger.info("OTP issued for %s (ttl=%ds)", normalize_email(email), self.ttl_seconds)
        return code

    def peek(self, email: str) -> OtpRecord | None:
        """Return the live record for email without consuming it."""
        return self.store.get_live(email, self.clock())

    def check(self, email: str, code: str) -> bool:
        """Return True and consume the record on an exact, unexpired match.

        Missing, expired and mismatched codes all return False; nothing raises.
        """
        return self.store.consume(email, str(code).strip(), self.clock())

    def purge_expired(self) -> int:
        return self.store.purge_expired(self.clock())
