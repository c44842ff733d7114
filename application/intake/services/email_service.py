"""
SMTP email sender built on aiosmtplib.
"""

from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import aiosmtplib

from intake.config.settings import IntakeConfigs
from intake.logging.utils import get_app_logger

logger = get_app_logger("intake.email_service")
configs = IntakeConfigs()


class EmailSendError(Exception):
    """Raised when a message could not be handed to the SMTP server"""


class EmailService:

    def __init__(self, settings: Optional[IntakeConfigs] = None):
        self.settings = settings or configs

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.SMTP_HOST and self.settings.EMAIL_FROM)

    def build_message(self, to: str, subject: str, text: str, html: Optional[str] = None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.settings.EMAIL_FROM_NAME, self.settings.EMAIL_FROM))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        """
        Send one message.

        Raises:
            EmailSendError: SMTP is not configured or the server rejected the message
        """
        if not self.is_configured:
            logger.error(f"smtp_not_configured | to={to} subject={subject}")
            raise EmailSendError("SMTP is not configured")

        message = self.build_message(to, subject, text, html)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.SMTP_HOST,
                port=self.settings.SMTP_PORT,
                username=self.settings.SMTP_USERNAME or None,
                password=self.settings.SMTP_PASSWORD or None,
                use_tls=self.settings.SMTP_USE_TLS,
                # implicit TLS and STARTTLS are mutually exclusive
                start_tls=self.settings.SMTP_USE_STARTTLS and not self.settings.SMTP_USE_TLS,
                timeout=self.settings.SMTP_TIMEOUT,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"email_send_failed | to={to} subject={subject} error={e}")
            raise EmailSendError(str(e)) from e
        logger.info(f"email_sent | to={to} subject={subject}")


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """FastAPI dependency returning the shared email sender"""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
