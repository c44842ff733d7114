"""
Post-registration notifications, run as FastAPI background tasks after the
response is sent. Failures are logged and reported to Sentry only.
"""

from intake.config.sentry import add_breadcrumb, capture_exception
from intake.config.settings import IntakeConfigs
from intake.dto.candidates import CandidateOut
from intake.logging.utils import get_app_logger
from intake.services.email_service import EmailService
from intake.services.email_templates import render_admin_notification, render_welcome_email

logger = get_app_logger("intake.notification_service")
configs = IntakeConfigs()


class NotificationService:

    def __init__(self, email_service: EmailService):
        self.email_service = email_service

    async def send_welcome_email(self, candidate: CandidateOut) -> bool:
        try:
            rendered = render_welcome_email(candidate)
            await self.email_service.send(candidate.email, rendered.subject, rendered.text, rendered.html)
            logger.info(f"welcome_email_sent | candidate_id={candidate.id} email={candidate.email}")
            return True
        except Exception as e:
            add_breadcrumb("welcome email failed", category="notification", level="error",
                           data={"candidate_id": candidate.id})
            capture_exception(e)
            return False

    async def send_admin_notification(self, candidate: CandidateOut) -> bool:
        if not configs.ADMIN_NOTIFICATION_EMAIL:
            logger.info(f"admin_notification_skipped | candidate_id={candidate.id} reason=no_recipient")
            return False
        try:
            rendered = render_admin_notification(candidate)
            await self.email_service.send(configs.ADMIN_NOTIFICATION_EMAIL, rendered.subject, rendered.text, rendered.html)
            logger.info(f"admin_notification_sent | candidate_id={candidate.id}")
            return True
        except Exception as e:
            add_breadcrumb("admin notification failed", category="notification", level="error",
                           data={"candidate_id": candidate.id})
            capture_exception(e)
            return False

    async def notify_registration(self, candidate: CandidateOut) -> None:
        """Background task entry point; the two mails are independent."""
        if not configs.NOTIFICATIONS_ENABLED:
            logger.info(f"notifications_disabled | candidate_id={candidate.id}")
            return
        await self.send_welcome_email(candidate)
        await self.send_admin_notification(candidate)
