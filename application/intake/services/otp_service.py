import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from intake.config.settings import IntakeConfigs
from intake.core.exceptions import (
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    OTPCodeMismatch,
    OTPExpired,
    OTPNotFound,
    ValidationError,
)
from intake.logging.utils import get_app_logger
from intake.repository.candidates import CandidateRepository
from intake.services.email_service import EmailSendError, EmailService
from intake.services.email_templates import render_otp_email
from intake.services.otp_store import OTPEntry, OTPStore
from intake.utils.datetime_helpers import get_utc_now

logger = get_app_logger(__name__)
configs = IntakeConfigs()

_system_random = random.SystemRandom()


class OTPService:
    """
    Email OTP issuance and verification:
    - OTP generation
    - storage of the live entry per email
    - verification with lazy expiry
    """

    def __init__(
        self,
        store: OTPStore,
        email_service: EmailService,
        clock: Callable[[], datetime] = get_utc_now,
    ):
        self.store = store
        self.email_service = email_service
        self.clock = clock
        self.otp_length = configs.OTP_LENGTH
        self.otp_expiry_minutes = configs.OTP_EXPIRY_MINUTES

    def generate_otp(self) -> str:
        """
        Generate a random numeric OTP.

        Returns:
            str: Uniform random code of configured length with no leading zero
        """
        return str(_system_random.randint(10 ** (self.otp_length - 1), (10 ** self.otp_length) - 1))

    async def request_otp(self, email: Optional[str], repository: CandidateRepository) -> datetime:
        """
        Issue a fresh code for the email and mail it.

        The entry is stored before delivery, so it is kept when delivery fails.

        Returns:
            datetime: expiry of the issued code
        """
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")

        if repository.find_by_email(email):
            logger.warning(f"otp_request_rejected | email={email} reason=already_registered")
            raise EmailAlreadyRegistered(field="email")

        otp = self.generate_otp()
        expires_at = self.clock() + timedelta(minutes=self.otp_expiry_minutes)
        self.store.put(email, OTPEntry(code=otp, expires_at=expires_at, verified=False))
        logger.info(f"otp_issued | email={email} expires_at={expires_at.isoformat()}")

        rendered = render_otp_email(otp, self.otp_expiry_minutes)
        try:
            await self.email_service.send(email, rendered.subject, rendered.text, rendered.html)
        except EmailSendError as e:
            logger.error(f"otp_delivery_failed | email={email} error={e}")
            raise EmailDeliveryFailed() from e

        return expires_at

    async def verify_otp(self, email: Optional[str], otp: Optional[str]) -> None:
        """Mark the live entry verified when the submitted code matches"""
        if not email or not otp:
            raise ValidationError("Email and OTP are required")

        entry = self.store.get(email)
        if entry is None:
            logger.warning(f"otp_verify_failed | email={email} reason=not_found")
            raise OTPNotFound()

        if entry.is_expired(self.clock()):
            self.store.delete(email)
            logger.warning(f"otp_verify_failed | email={email} reason=expired")
            raise OTPExpired()

        if otp != entry.code:
            logger.warning(f"otp_verify_failed | email={email} reason=mismatch")
            raise OTPCodeMismatch()

        entry.verified = True
        self.store.put(email, entry)
        logger.info(f"otp_verified | email={email}")
