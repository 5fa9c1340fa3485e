"""SMTP adapter for the DeliverySink protocol.

Messages are sent over implicit TLS with login authentication. The blocking
SMTP conversation runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import dataclasses
import email.utils
import smtplib
import ssl
from email.message import EmailMessage

from dashreport.logging import get_logger, log_error, log_info

from .sink import DEFAULT_ATTACHMENT_NAME

logger = get_logger(__name__)

_DEFAULT_BODY = "The requested dashboard report is attached."


@dataclasses.dataclass(frozen=True, slots=True)
class SmtpConfig:
    """Connection settings for the outgoing mail server.

    Attributes
    ----------
    host
        SMTP server host name.
    port
        Implicit-TLS port.
    username
        Login user; authentication is skipped when empty.
    password
        Login password.
    sender
        ``From`` address.
    timeout_s
        Socket timeout in seconds.

    """

    host: str = "localhost"
    port: int = 465
    username: str = ""
    password: str = ""
    sender: str = "dashreport@localhost"
    timeout_s: float = 30.0
    body: str = _DEFAULT_BODY


def build_message(
    config: SmtpConfig,
    *,
    recipient: str,
    subject: str,
    attachment: bytes | None,
    filename: str,
) -> EmailMessage:
    """Build the message sent for one delivery."""
    message = EmailMessage()
    message["From"] = config.sender
    message["To"] = recipient
    message["Subject"] = subject
    message["Date"] = email.utils.formatdate(localtime=True)
    message.set_content(config.body)
    if attachment is not None:
        message.add_attachment(
            attachment,
            maintype="application",
            subtype="pdf",
            filename=filename,
        )
    return message


class SmtpDelivery:
    """Deliver reports by e-mail."""

    def __init__(self, config: SmtpConfig) -> None:
        """Initialise the sink with mail server settings."""
        self._config = config

    async def deliver(
        self,
        *,
        recipient: str,
        subject: str,
        attachment: bytes | None = None,
        filename: str = DEFAULT_ATTACHMENT_NAME,
    ) -> bool:
        """Send one message and return True when the server accepted it.

        Headers that cannot be encoded count as a failed delivery.
        """
        try:
            message = build_message(
                self._config,
                recipient=recipient,
                subject=subject,
                attachment=attachment,
                filename=filename,
            )
            await asyncio.to_thread(self._send, message)
        except (OSError, ValueError, smtplib.SMTPException) as exc:
            log_error(logger, "Could not mail %r to %s: %s", subject, recipient, exc)
            return False
        log_info(logger, "Mailed %r to %s", subject, recipient)
        return True

    def _send(self, message: EmailMessage) -> None:
        config = self._config
        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(
            config.host, config.port, timeout=config.timeout_s, context=context
        ) as server:
            if config.username:
                server.login(config.username, config.password)
            server.send_message(message)


__all__ = ["SmtpConfig", "SmtpDelivery", "build_message"]
