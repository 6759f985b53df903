"""
Transactional mail over SMTP.

Messages are built with ``email.message.EmailMessage`` and delivered with
``smtplib`` (STARTTLS) in a worker thread. When no SMTP credentials are
configured the message is only logged.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage

from starlette.concurrency import run_in_threadpool

from tourbnt.core.logging_config import get_logger
from tourbnt.server.core.config import MailConfig, settings

logger = get_logger(__name__)


class MailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot accept a message."""


def build_message(to: str, subject: str, body: str, sender: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = to
    message.set_content(body)
    return message


def _deliver(config: MailConfig, message: EmailMessage) -> None:
    try:
        with smtplib.SMTP(config.host, config.port, timeout=30) as server:
            server.starttls()
            server.login(config.user, config.password)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        raise MailDeliveryError(f"Failed to send mail to {message['To']}: {e}") from e


async def send_mail(to: str, subject: str, body: str) -> bool:
    """Send one plain text message.

    Returns:
        True when the message was handed to the SMTP server, False when mail is not configured

    Raises:
        MailDeliveryError: The SMTP exchange failed
    """
    config = settings.mail
    if not config.enabled:
        logger.info(f"Mail delivery disabled, skipping '{subject}' to {to}")
        return False
    await run_in_threadpool(_deliver, config, build_message(to, subject, body, config.sender))
    logger.info(f"Sent '{subject}' to {to}")
    return True


async def send_verification_email(to: str, name: str, token: str) -> bool:
    link = f"{settings.frontend_domain}/auth/verify-email?token={token}"
    body = (
        f"Hi {name},\n\n"
        "Thanks for signing up for TourBNT. Please confirm your email address by opening the link below:\n\n"
        f"{link}\n\n"
        "The link expires in one hour.\n"
    )
    return await send_mail(to, "Verify your TourBNT account", body)


async def send_reset_password_email(to: str, name: str, token: str) -> bool:
    link = f"{settings.frontend_domain}/auth/reset-password?token={token}"
    body = (
        f"Hi {name},\n\n"
        "We received a request to reset your TourBNT password. Open the link below to choose a new one:\n\n"
        f"{link}\n\n"
        "If you did not ask for this, you can ignore this message. The link expires in one hour.\n"
    )
    return await send_mail(to, "Reset your TourBNT password", body)
