"""Email transports used by the notification dispatcher.

``SmtpMailer`` talks to a real SMTP relay; ``LogMailer`` only logs the message
and is selected when no ``MAIL_HOST`` is configured (local development).
Both expose ``send(recipient, subject, html_body)`` and raise on failure.
"""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int = 587,
        sender: str = 'IT Support <support@company.com>',
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, recipient: str, subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def send(self, recipient: str, subject: str, html_body: str) -> None:
        msg = self.build_message(recipient, subject, html_body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)


class LogMailer:
    def send(self, recipient: str, subject: str, html_body: str) -> None:
        logger.info("Email to %s: %s (%d bytes)", recipient, subject, len(html_body))


def build_mailer(config: Mapping[str, Any]):
    host = config.get('MAIL_HOST')
    if not host:
        return LogMailer()
    return SmtpMailer(
        host=host,
        port=int(config.get('MAIL_PORT') or 587),
        sender=config.get('MAIL_FROM') or 'IT Support <support@company.com>',
        username=config.get('MAIL_USERNAME'),
        password=config.get('MAIL_PASSWORD'),
        use_tls=bool(config.get('MAIL_USE_TLS', True)),
    )

__all__ = ['SmtpMailer', 'LogMailer', 'build_mailer']
