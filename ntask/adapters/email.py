"""SMTP email sender for document request notifications."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from ntask.config import Settings
from ntask.utils.logging import StructuredDeliveryLogger
from ntask.utils.metrics import PrometheusDeliveryMetrics

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Best-effort HTML email sink."""

    async def send(self, to: str, subject: str, html: str, *, template: str) -> bool:
        """Send one message; returns False instead of raising on failure."""
        ...


class SmtpEmailSender:
    """Sends HTML email over SMTP.

    smtplib is blocking, so each send runs in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_addr: str,
        *,
        secure: bool = False,
        timeout: float = 10.0,
    ) -> None:
        """Initialize sender.

        Args:
            host: SMTP server host
            port: SMTP server port
            user: Login user
            password: Login password
            from_addr: Envelope/header sender (falls back to ``user``)
            secure: Use implicit TLS (SMTP_SSL) instead of STARTTLS
            timeout: Socket timeout in seconds
        """
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._from = from_addr or user
        self._secure = secure
        self._timeout = timeout
        self._delivery_log = StructuredDeliveryLogger()
        self._metrics = PrometheusDeliveryMetrics()

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        """Build a multipart message with a plain-text fallback."""
        message = EmailMessage()
        message["From"] = self._from
        message["To"] = to
        # Header values may not contain CR or LF
        message["Subject"] = " ".join(subject.split())
        message.set_content(html)
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        if self._secure:
            with smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.login(self._user, self._password)
                smtp.send_message(message)
        else:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.starttls()
                smtp.login(self._user, self._password)
                smtp.send_message(message)

    async def send(self, to: str, subject: str, html: str, *, template: str) -> bool:
        try:
            message = self.build_message(to, subject, html)
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            self._delivery_log.log_delivery(
                "email",
                template,
                "failed",
                error_reason=f"{type(e).__name__}: {e}",
                recipient=to,
            )
            self._metrics.record_email(template, "failed")
            return False

        self._delivery_log.log_delivery("email", template, "success", recipient=to)
        self._metrics.record_email(template, "success")
        return True


def create_email_sender(settings: Settings) -> SmtpEmailSender | None:
    """Build the SMTP sender, or None when SMTP is not fully configured."""
    if not settings.smtp_host or not settings.smtp_user or not settings.smtp_password:
        logger.warning("Email configuration incomplete. Email sending disabled.")
        return None

    return SmtpEmailSender(
        settings.smtp_host,
        settings.smtp_port,
        settings.smtp_user,
        settings.smtp_password,
        settings.smtp_from,
        secure=settings.smtp_secure,
        timeout=settings.outbound_timeout_sec,
    )
