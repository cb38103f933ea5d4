"""
Mail Infrastructure
===================

Outbound email transports.

- SMTPEmailTransport: delivers through an SMTP relay (SSL on port 465,
  STARTTLS elsewhere when offered)
- LoggingEmailTransport: development fallback that only logs the message
"""

import asyncio
import smtplib
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional

from triagedesk.config import Settings, settings
from triagedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OutgoingEmail:
    """Plain-text email handed to a transport."""
    to: str
    subject: str
    text: str


class IEmailTransport(ABC):
    """Interface for email delivery."""

    @abstractmethod
    async def send(self, email: OutgoingEmail) -> str:
        """Deliver the email and return its message id."""


class SMTPEmailTransport(IEmailTransport):
    """
    SMTP transport built on smtplib.

    smtplib is blocking, so each send runs in a worker thread and opens its
    own connection.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender_email: str,
        sender_name: str = "Support System",
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0
    ):
        self._host = host
        self._port = port
        self._sender = formataddr((sender_name, sender_email))
        self._sender_domain = sender_email.rpartition("@")[2] or None
        self._user = user
        self._password = password
        self._timeout = timeout

    def _build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = email.to
        message["Subject"] = email.subject
        message["Message-ID"] = make_msgid(domain=self._sender_domain)
        message.set_content(email.text)
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        if self._port == 465:
            client = smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout)
        else:
            client = smtplib.SMTP(self._host, self._port, timeout=self._timeout)

        with client:
            if self._port != 465:
                client.ehlo()
                if client.has_extn("starttls"):
                    client.starttls()
                    client.ehlo()
            if self._user:
                client.login(self._user, self._password or "")
            client.send_message(message)

    async def send(self, email: OutgoingEmail) -> str:
        message = self._build_message(email)
        await asyncio.to_thread(self._send_sync, message)
        return message["Message-ID"]


class LoggingEmailTransport(IEmailTransport):
    """Writes emails to the log instead of sending them."""

    async def send(self, email: OutgoingEmail) -> str:
        message_id = f"<{uuid.uuid4()}@localhost>"
        logger.info(
            "Email not sent (SMTP not configured)",
            extra={
                "message_id": message_id,
                "to": email.to,
                "subject": email.subject,
                "body": email.text,
            }
        )
        return message_id


def build_email_transport(config: Optional[Settings] = None) -> IEmailTransport:
    """Pick the SMTP transport when a host is configured, else the logging one."""
    config = config or settings

    if not config.smtp_host:
        logger.warning("SMTP_HOST not set - notifications will only be logged")
        return LoggingEmailTransport()

    return SMTPEmailTransport(
        host=config.smtp_host,
        port=config.smtp_port,
        sender_email=config.sender_email,
        sender_name=config.sender_name,
        user=config.smtp_user,
        password=config.smtp_password,
        timeout=config.smtp_timeout_seconds
    )
