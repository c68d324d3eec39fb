"""
SMTP mailer for the daily digest and operator alerts.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from alerttracker.domain.config import SmtpSettings
from alerttracker.domain.errors import TrackerError

logger = logging.getLogger(__name__)


class MailError(TrackerError):
    """Delivery failed or SMTP is not configured."""


class SmtpMailer:
    """Send HTML or plain-text mail through the configured SMTP relay."""

    def __init__(self, settings: SmtpSettings, timeout: float = 30.0):
        self.settings = settings
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    def send(
        self,
        recipients: list[str],
        subject: str,
        body: str,
        html: bool = True,
    ) -> None:
        """
        Send one message to all recipients.

        Raises:
            MailError: SMTP not configured, or the relay rejected the message
        """
        if not self.is_configured:
            raise MailError("SMTP host is not configured")
        if not recipients:
            raise MailError("No recipients")

        msg = MIMEMultipart("alternative")
        msg["From"] = self.settings.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "html" if html else "plain", "utf-8"))

        try:
            with smtplib.SMTP(self.settings.host, self.settings.port, timeout=self.timeout) as server:
                if self.settings.use_tls:
                    server.starttls()
                if self.settings.username:
                    server.login(self.settings.username, self.settings.password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"SMTP delivery failed: {e}") from e

        logger.info("Sent '%s' to %d recipient(s)", subject, len(recipients))
