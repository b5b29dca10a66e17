import logging
import smtplib
import socket
from datetime import datetime
from email.errors import MessageError
from email.mime.text import MIMEText
from email.utils import formatdate
from functools import lru_cache
from typing import Optional, Tuple

from classroom.core.config.settings import Settings, get_settings
from classroom.core.errors import DeliveryError, Timeout
from classroom.utils.helpers import format_datetime

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends plain text mail over SMTP using the configured account."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def send(self, to_email: str, subject: str, body: str) -> None:
        """
        Send a plain text email

        Args:
            to_email: Recipient email address
            subject: Email subject
            body: Text body of the email

        Raises:
            DeliveryError: if the message could not be handed to the SMTP server
            Timeout: if the SMTP server did not answer within EMAIL_TIMEOUT
        """
        settings = self.settings
        try:
            msg = MIMEText(body, "plain")
            msg["From"] = settings.DEFAULT_FROM_EMAIL
            msg["To"] = to_email
            msg["Subject"] = subject
            msg["Date"] = formatdate(localtime=True)

            with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=settings.EMAIL_TIMEOUT) as server:
                if settings.EMAIL_USE_TLS:
                    server.starttls()
                if settings.EMAIL_HOST_USER:
                    server.login(settings.EMAIL_HOST_USER, settings.EMAIL_HOST_PASSWORD)
                server.sendmail(settings.EMAIL_HOST_USER or settings.DEFAULT_FROM_EMAIL, [to_email], msg.as_string())
        except socket.timeout as e:
            raise Timeout(f"SMTP server timed out sending to {to_email}") from e
        # an address smtplib cannot encode fails with UnicodeEncodeError, a ValueError
        except (smtplib.SMTPException, MessageError, OSError, ValueError) as e:
            raise DeliveryError(f"Failed to send email to {to_email}: {str(e)}") from e


def create_deadline_reminder(title: str, deadline: datetime) -> Tuple[str, str]:
    """Subject and body of the reminder sent before an assignment is due"""
    subject = f"Upcoming Assignment Deadline: {title}"
    body = (
        "Dear Student,\n\n"
        f'This is a reminder that the deadline for the assignment "{title}" '
        f"is at {format_datetime(deadline)}.\n\n"
        "Please make sure to submit it on time.\n\n"
        "Best regards,\n"
        "Virtual Classroom Team"
    )
    return subject, body


@lru_cache()
def get_notifier() -> EmailNotifier:
    return EmailNotifier()
