"""Service for sending emails."""

import html
import logging
import re
import smtplib
from datetime import timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Tuple

from karibu.domain.errors import DeliveryError

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"<[^>]+>")


class EmailService:
    """Notifier that delivers HTML email via SMTP with STARTTLS."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_name: str = "Karibu Kenya",
        timeout: float = 30.0,
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_name = from_name
        self.timeout = timeout
        self.enabled = bool(self.smtp_host and self.smtp_username)

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Send an email.

        Args:
            to_address: Recipient email
            subject: Email subject
            html_body: HTML body; a plain text part is derived from it

        Raises:
            DeliveryError: If the SMTP server rejects or cannot receive the message
        """
        if not self.enabled:
            # Development mode: no SMTP server configured, the body carries the link.
            logger.info("SMTP disabled; email to %s (%s):\n%s", to_address, subject, html_body)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.smtp_username}>"
        msg["To"] = to_address
        msg.attach(MIMEText(_html_to_text(html_body), "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Failed to send email to %s: %s", to_address, exc)
            raise DeliveryError(str(exc)) from exc


def build_verification_email(frontend_url: str, token: str, ttl: timedelta = timedelta(hours=24)) -> Tuple[str, str]:
    """Return ``(subject, html_body)`` for the address verification message."""
    link = html.escape(f"{frontend_url.rstrip('/')}/verify-email/{token}", quote=True)
    subject = "Email Verification - Karibu Kenya"
    body = f"""
      <h2>Welcome to Karibu Kenya!</h2>
      <p>Please click the link below to verify your email address:</p>
      <a href="{link}"
         style="background-color: #4CAF50; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">
        Verify Email
      </a>
      <p>{link}</p>
      <p>This link will expire in {_describe(ttl)}.</p>
      <p>If you didn't create an account, please ignore this email.</p>
    """
    return subject, body


def build_password_reset_email(frontend_url: str, token: str, ttl: timedelta = timedelta(minutes=10)) -> Tuple[str, str]:
    """Return ``(subject, html_body)`` for the password reset message."""
    link = html.escape(f"{frontend_url.rstrip('/')}/reset-password/{token}", quote=True)
    subject = "Password Reset - Karibu Kenya"
    body = f"""
      <h2>Password Reset Request</h2>
      <p>You have requested a password reset. Please click the link below to reset your password:</p>
      <a href="{link}"
         style="background-color: #4CAF50; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">
        Reset Password
      </a>
      <p>{link}</p>
      <p>This link will expire in {_describe(ttl)}.</p>
      <p>If you didn't request this, please ignore this email.</p>
    """
    return subject, body


def _html_to_text(body: str) -> str:
    text = html.unescape(_TAG_PATTERN.sub("", body))
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


def _describe(ttl: timedelta) -> str:
    minutes = int(ttl.total_seconds() // 60)
    if minutes and minutes % 60 == 0:
        value, unit = minutes // 60, "hour"
    else:
        value, unit = minutes, "minute"
    return f"{value} {unit}{'' if value == 1 else 's'}"
