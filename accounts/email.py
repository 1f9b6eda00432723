"""Outbound email: verification and password-reset links."""
from __future__ import annotations

import html
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from starlette.concurrency import run_in_threadpool

from accounts.models import User
from config import Settings

logger = logging.getLogger("techwatch.email")


class EmailDeliveryFailed(Exception):
    """An email could not be handed to the mail server."""


def redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailDispatcher(ABC):
    """Sends account emails. Implementations raise EmailDeliveryFailed on failure."""

    @abstractmethod
    async def send_verification(self, user: User, url: str) -> None:
        ...

    @abstractmethod
    async def send_password_reset(self, user: User, url: str) -> None:
        ...


class SmtpEmailDispatcher(EmailDispatcher):
    """EmailDispatcher over SMTP. Logs instead of sending when SMTP_HOST is unset (dev mode)."""

    def __init__(self, settings: Settings, *, from_name: str = "Techwatch", timeout: float = 30.0) -> None:
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.smtp_use_tls = settings.smtp_use_tls
        self.from_email = settings.email_from or settings.smtp_user
        self.from_name = from_name
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    # Pseudo is user-chosen; both parts escape it so it cannot carry markup or links
    async def send_verification(self, user: User, url: str) -> None:
        subject = "Your account verification code"
        text = (
            f"Hi {html.escape(user.pseudo, quote=False)},\n\n"
            f"Please confirm your email address by opening the link below:\n{url}\n\n"
            "If you did not create an account, you can ignore this email."
        )
        html_body = (
            f"<p>Hi {html.escape(user.pseudo)},</p>"
            f'<p>Please confirm your email address: <a href="{url}">verify my email</a></p>'
            "<p>If you did not create an account, you can ignore this email.</p>"
        )
        await run_in_threadpool(self._send, user.email, subject, html_body, text)

    async def send_password_reset(self, user: User, url: str) -> None:
        subject = "Your password reset token (valid for only 10 minutes)"
        text = (
            f"Hi {html.escape(user.pseudo, quote=False)},\n\n"
            f"Forgot your password? Reset it here:\n{url}\n\n"
            "If you didn't forget your password, please ignore this email."
        )
        html_body = (
            f"<p>Hi {html.escape(user.pseudo)},</p>"
            f'<p>Forgot your password? <a href="{url}">Reset it here</a>.</p>'
            "<p>If you didn't forget your password, please ignore this email.</p>"
        )
        await run_in_threadpool(self._send, user.email, subject, html_body, text)

    def _send(self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        if not self.is_configured:
            # Links carry one-time codes; never written to the log
            logger.info("Email not configured, skipping send to %s: %s", redact_email(to_email), subject)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        if text_body:
            msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=self.timeout) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send email to %s: %s", redact_email(to_email), e)
            raise EmailDeliveryFailed(str(e)) from e
        logger.info("Email sent to %s: %s", redact_email(to_email), subject)
