"""
Outbound email over SMTP.

Delivery is a blocking smtplib conversation, so send() runs it in the
thread pool. Failures surface as UpstreamError; nothing is retried.
When email is disabled in settings the message is only logged.
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from fastapi.concurrency import run_in_threadpool

from ..utils.config import EmailSettings
from ..utils.exceptions import UpstreamError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None:
        ...


class EmailNotifier:
    """SMTP notifier"""

    def __init__(self, settings: EmailSettings):
        self.settings = settings

    def _build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.settings.sender_name, self.settings.sender_address))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    def _send_sync(self, to: str, subject: str, html: str) -> None:
        message = self._build_message(to, subject, html)
        try:
            with smtplib.SMTP(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.timeout_seconds,
            ) as smtp:
                if self.settings.use_tls:
                    smtp.starttls()
                if self.settings.smtp_user:
                    smtp.login(self.settings.smtp_user, self.settings.smtp_password or "")
                refused = smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email delivery failed", to=to, subject=subject, error=str(e))
            raise UpstreamError("Something went wrong while sending email. Please try again later")
        if refused:
            logger.error("Email recipient refused", to=to, subject=subject)
            raise UpstreamError("Something went wrong while sending email. Please try again later")

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self.settings.enabled:
            logger.info("Email delivery disabled, message not sent", to=to, subject=subject)
            return
        await run_in_threadpool(self._send_sync, to, subject, html)
        logger.info("Email sent", to=to, subject=subject)


def verification_email_html(confirmation_link: str, resend_link: str = "") -> str:
    html = f'<a href="{confirmation_link}" target="_blank">Verify Email</a> <br />'
    if resend_link:
        html += (
            f"<p>If the link above isn't working <a href=\"{resend_link}\" target=\"_blank\">"
            "click here</a> to resend a new confirmation email</p>"
        )
    return html


def reset_code_email_html(code: str) -> str:
    return (
        "<p>This email is sent to you upon your request to reset your password</p>"
        f"<h1>Code: {code}</h1>"
        "<p>If you did not request resetting your password, ignore this email</p>"
    )
