"""
Email adapter for the Trajet backend.

The default implementation uses SMTP, reading credentials from Settings.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import smtplib
import ssl

from .config import get_settings
from .logger import get_logger

logger = get_logger(__name__)


def _build_message(subject: str, sender: str, to_email: str, html_body: str | None, text_body: str) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to_email
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    if html_body:
        msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


def send_email(subject: str, to_email: str, html_body: str | None, text_body: str | None = None) -> bool:
    """
    Send an email through the configured SMTP server.

    Returns False without sending when SMTP settings are incomplete, and False
    when delivery fails. Never raises: callers decide what a failed delivery
    means for their flow.
    """
    settings = get_settings()
    if not (
        settings.smtp_host
        and settings.smtp_user
        and settings.smtp_password
        and settings.smtp_from
        and settings.smtp_port
    ):
        logger.warning("SMTP not configured; skipping email %r to %s", subject, to_email)
        return False
    msg = _build_message(subject, settings.smtp_from, to_email, html_body, text_body or html_body or "")
    port = settings.smtp_port or 465
    try:
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, port) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email %r to %s: %s", subject, to_email, exc)
        return False
    logger.info("Email %r sent to %s", subject, to_email)
    return True
