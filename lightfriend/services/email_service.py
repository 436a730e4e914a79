"""Plain-text email over SMTP (email tool and admin email broadcast)."""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from lightfriend.core.config import settings

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD)


def send_email(to_email: str, subject: str, body: str) -> bool:
    """Send a simple text email. Returns False when SMTP is missing or the send fails."""
    if not smtp_configured():
        logger.warning("No email provider configured. Set SMTP_HOST, SMTP_USER and SMTP_PASSWORD")
        return False

    from_email = settings.FROM_EMAIL or settings.SMTP_USER
    msg = MIMEMultipart()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "plain"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", to_email, e)
        return False
    logger.info("Email sent to %s", to_email)
    return True
