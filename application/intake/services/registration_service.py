"""
Registration finalizer

Admits a candidate once the email holds a verified OTP entry. The steps run in
this order under the per-email registration lock:

1. verified OTP gate (before any payload or upload validation)
2. payload validation against CandidateRegistrationRequest
3. profile photo validated and saved
4. OTP entry consumed (single use)
5. email then phone uniqueness
6. insert, with unique index violations re-classified as duplicates

Any failure after the photo is saved removes it again. Database failures
surface as PersistenceError. Notifications are queued as background tasks
only after the insert succeeds.
"""

from typing import Any, Mapping, Optional

from fastapi import BackgroundTasks, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from intake.config.sentry import add_breadcrumb, capture_exception
from intake.core.constants import CandidateStatus
from intake.core.exceptions import (
    DuplicateEmail,
    DuplicatePhone,
    EmailNotVerified,
    PersistenceError,
    RegistrationInProgress,
    ValidationError,
)
from intake.dto.candidates import CandidateOut, CandidateRegistrationRequest, first_validation_error
from intake.logging.utils import get_app_logger
from intake.middlewares.request_context import request_context
from intake.models.candidates import Candidate
from intake.repository.candidates import CandidateRepository
from intake.services.file_storage import LocalFileStorage, StoredFile
from intake.services.notification_service import NotificationService
from intake.services.otp_store import OTPStore
from intake.services.registration_lock import RegistrationLock

logger = get_app_logger(__name__)

# registration_id is count based; concurrent inserts of one user type can collide
MAX_INSERT_ATTEMPTS = 3


class RegistrationService:

    def __init__(
        self,
        store: OTPStore,
        lock: RegistrationLock,
        repository: CandidateRepository,
        file_storage: LocalFileStorage,
        notification_service: NotificationService,
    ):
        self.store = store
        self.lock = lock
        self.repository = repository
        self.file_storage = file_storage
        self.notification_service = notification_service

    async def complete_registration(
        self,
        form: Mapping[str, Any],
        upload: Optional[UploadFile] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Candidate:
        email = form.get("email")
        if not email:
            raise EmailNotVerified(field="email")

        if not await self.lock.acquire(email):
            raise RegistrationInProgress(field="email")
        try:
            candidate = await self._finalize(email, form, upload)
        finally:
            await self.lock.release(email)

        if background_tasks is not None:
            background_tasks.add_task(
                self.notification_service.notify_registration,
                CandidateOut.model_validate(candidate),
            )
        return candidate

    async def _finalize(self, email: str, form: Mapping[str, Any], upload: Optional[UploadFile]) -> Candidate:
        entry = self.store.get(email)
        if entry is None or entry.verified is not True:
            logger.warning(f"registration_rejected | email={email} reason=not_verified")
            raise EmailNotVerified(field="email")

        try:
            payload = CandidateRegistrationRequest.model_validate(dict(form))
        except PydanticValidationError as e:
            field, message = first_validation_error(e)
            logger.warning(f"registration_rejected | email={email} reason=invalid_payload field={field}")
            raise ValidationError(message, field=field) from e

        photo = await self.file_storage.save(upload)
        try:
            return self._admit(email, payload, photo)
        except Exception:
            self.file_storage.delete(photo)
            raise

    def _admit(self, email: str, payload: CandidateRegistrationRequest, photo: Optional[StoredFile]) -> Candidate:
        # single use: a verified code cannot admit a second candidate
        self.store.delete(email)

        try:
            if self.repository.find_by_email(payload.email):
                logger.warning(f"registration_rejected | email={email} reason=duplicate_email")
                raise DuplicateEmail(field="email")
            if self.repository.find_by_phone(payload.phone):
                logger.warning(f"registration_rejected | email={email} reason=duplicate_phone")
                raise DuplicatePhone(field="phone")

            data = payload.model_dump()
            data["status"] = CandidateStatus.PENDING
            data["profile_photo"] = photo.url if photo else None

            candidate = self._insert(data)
        except SQLAlchemyError as e:
            logger.error(f"registration_db_error | email={email} error={e}")
            add_breadcrumb("candidate registration failed", category="database", level="error")
            capture_exception(e)
            raise PersistenceError() from e

        request_context.candidate_id = candidate.id
        logger.info(f"registration_completed | candidate_id={candidate.id} registration_id={candidate.registration_id}")
        return candidate

    def _insert(self, data: dict) -> Candidate:
        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            try:
                return self.repository.create(dict(data))
            except IntegrityError as e:
                if self.repository.find_by_email(data["email"]):
                    logger.warning(f"registration_conflict | email={data['email']} reason=duplicate_email")
                    raise DuplicateEmail(field="email") from e
                if self.repository.find_by_phone(data["phone"]):
                    logger.warning(f"registration_conflict | email={data['email']} reason=duplicate_phone")
                    raise DuplicatePhone(field="phone") from e
                logger.warning(f"registration_id_conflict | attempt={attempt} user_type={data['user_type']}")
                last_error = e

        capture_exception(last_error)
        raise PersistenceError() from last_error
