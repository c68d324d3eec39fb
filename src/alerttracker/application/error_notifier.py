"""
Operator notification for fatal errors.

Forwards the failing operation, error detail and traceback to the
configured error address. Notification problems are logged, never raised,
so they cannot mask the original error.
"""

from __future__ import annotations

import logging
import traceback

from alerttracker.infrastructure.mailer import MailError, SmtpMailer

logger = logging.getLogger(__name__)

SUBJECT_PREFIX = "[Alerts Tracker] ERROR"


def format_error_report(operation: str, error: BaseException) -> str:
    """Plain-text body: operation, error type and message, traceback."""
    tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return (
        f"Operation: {operation}\n"
        f"Error: {type(error).__name__}: {error}\n"
        f"\n"
        f"Traceback:\n{tb}"
    )


class ErrorNotifier:
    """Mails fatal errors to the operator address, when one is configured."""

    def __init__(self, mailer: SmtpMailer, error_email: str | None):
        self.mailer = mailer
        self.error_email = (error_email or "").strip()

    @property
    def enabled(self) -> bool:
        return bool(self.error_email) and self.mailer.is_configured

    def notify(self, operation: str, error: BaseException) -> bool:
        """
        Send one error report.

        Returns:
            True when the report was delivered
        """
        if not self.enabled:
            logger.debug("Error notification skipped (no error_email or SMTP)")
            return False
        try:
            self.mailer.send(
                [self.error_email],
                f"{SUBJECT_PREFIX}: {operation}",
                format_error_report(operation, error),
                html=False,
            )
        except MailError as e:
            logger.error("Could not deliver error notification: %s", e)
            return False
        return True
