"""Outbound email transport.

The reminder service hands a fully rendered ``OutgoingEmail`` to an
``EmailTransport`` together with the owner's connected account. Transports
raise ``TransportError`` when the message was not accepted.
"""

import logging
import os
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from invoicetrack.domain.entities import EmailConnection

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The transport did not accept a message."""


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    body: str
    is_html: bool = True
    text: Optional[str] = None
    sender_name: Optional[str] = None
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)


class EmailTransport(ABC):
    """Sends mail on behalf of an owner's connected account."""

    @abstractmethod
    def send(self, message: OutgoingEmail, connection: EmailConnection) -> None:
        """Send a message.

        Raises:
            TransportError: If the message was not accepted
        """
        pass


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SMTPConfig:
    host: str = "localhost"
    port: int = 587
    starttls: bool = True
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "SMTPConfig":
        """Read INVOICETRACK_SMTP_HOST, INVOICETRACK_SMTP_PORT and INVOICETRACK_SMTP_STARTTLS."""
        return cls(
            host=os.environ.get("INVOICETRACK_SMTP_HOST", "localhost"),
            port=int(os.environ.get("INVOICETRACK_SMTP_PORT", "587")),
            starttls=_env_flag("INVOICETRACK_SMTP_STARTTLS", True),
        )


def build_message(message: OutgoingEmail, connection: EmailConnection) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = formataddr((message.sender_name or connection.name or "", connection.email))
    msg["To"] = message.to
    if message.cc:
        msg["Cc"] = ", ".join(message.cc)
    msg["Subject"] = message.subject
    if message.is_html:
        msg.set_content(message.text or "This message requires an HTML-capable mail client.")
        msg.add_alternative(message.body, subtype="html")
    else:
        msg.set_content(message.body)
    return msg


class SMTPTransport(EmailTransport):
    """Send through an SMTP relay, logging in with the connected account."""

    def __init__(self, config: Optional[SMTPConfig] = None):
        self.config = config or SMTPConfig.from_env()

    def send(self, message: OutgoingEmail, connection: EmailConnection) -> None:
        msg = build_message(message, connection)
        recipients = [message.to, *message.cc, *message.bcc]
        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as smtp:
                if self.config.starttls:
                    smtp.starttls()
                smtp.login(connection.email, connection.credential)
                smtp.send_message(msg, from_addr=connection.email, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(f"SMTP delivery to {message.to} failed: {e}") from e
        logger.debug("SMTP accepted message to %s via %s", message.to, self.config.host)
