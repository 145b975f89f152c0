"""
auth/mailer.py -- Outbound mail for OTP delivery.

Two senders share one contract: `await sender.send(to, subject, body)`.
  SMTPMailSender    -- aiosmtplib, bounded by SMTP_TIMEOUT. Any SMTP error or
                       timeout is raised as MailDeliveryFailed so the caller
                       reports it instead of silently dropping the code.
  ConsoleMailSender -- development only. Logs recipient and subject; the body
                       carries the OTP and is never logged.

build_mail_sender() picks one from Settings.mail_backend.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

import asyncio
import logging
from email.message import EmailMessage

import aiosmtplib

from core.config import Settings, get_settings
from core.errors import MailDeliveryFailed

logger = logging.getLogger("campusinfo.mail")


class SMTPMailSender:
    """Deliver plain-text mail through an SMTP relay."""

    def __init__(self, settings: Settings) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username or None
        self.password = settings.smtp_password or None
        self.sender = settings.smtp_sender
        self.start_tls = settings.smtp_start_tls
        self.timeout = settings.smtp_timeout

    async def send(self, to_address: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.start_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, asyncio.TimeoutError, OSError) as exc:
            logger.error("Mail to %s failed: %s", to_address, type(exc).__name__)
            raise MailDeliveryFailed(detail=type(exc).__name__) from exc
        logger.info("Mail sent to %s: %s", to_address, subject)


class ConsoleMailSender:
    """Pretend to deliver mail. For local development without an SMTP relay."""

    async def send(self, to_address: str, subject: str, body: str) -> None:
        logger.warning("Console mail backend: not delivering '%s' to %s", subject, to_address)


def build_mail_sender(settings: Settings | None = None):
    settings = settings or get_settings()
    if settings.mail_backend == "console":
        return ConsoleMailSender()
    return SMTPMailSender(settings)
