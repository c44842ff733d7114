from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from intake.connections.database import get_db
from intake.dto.candidates import (
    CandidateOut,
    CandidateRegistrationResponse,
    CompanyPaymentStatusResponse,
    ExistsResponse,
    SendOTPRequest,
    SendOTPResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from intake.logging.utils import get_app_logger
from intake.middlewares.request_context import request_context
from intake.repository.candidates import CandidateRepository
from intake.services.candidate_service import CandidateService
from intake.services.email_service import EmailService, get_email_service
from intake.services.file_storage import PROFILE_PHOTO_FIELD, LocalFileStorage, get_file_storage
from intake.services.notification_service import NotificationService
from intake.services.otp_service import OTPService
from intake.services.otp_store import OTPStore, get_otp_store
from intake.services.registration_lock import RegistrationLock, get_registration_lock
from intake.services.registration_service import RegistrationService

logger = get_app_logger(__name__)

candidates_router = APIRouter(prefix="/candidates", tags=["candidates"])


def get_candidate_repository(db: Session = Depends(get_db)) -> CandidateRepository:
    return CandidateRepository(db)


def get_otp_service(
    store: OTPStore = Depends(get_otp_store),
    email_service: EmailService = Depends(get_email_service),
) -> OTPService:
    return OTPService(store, email_service)


def get_registration_service(
    store: OTPStore = Depends(get_otp_store),
    lock: RegistrationLock = Depends(get_registration_lock),
    repository: CandidateRepository = Depends(get_candidate_repository),
    file_storage: LocalFileStorage = Depends(get_file_storage),
    email_service: EmailService = Depends(get_email_service),
) -> RegistrationService:
    return RegistrationService(store, lock, repository, file_storage, NotificationService(email_service))


@candidates_router.post("/send-otp", response_model=SendOTPResponse)
async def send_otp(
    payload: SendOTPRequest,
    otp_service: OTPService = Depends(get_otp_service),
    repository: CandidateRepository = Depends(get_candidate_repository),
):
    """
    Issue an email OTP.
    Steps:
    1. Reject emails that already belong to a candidate
    2. Generate and store the code (overwrites any previous code)
    3. Mail the code; delivery failure keeps the stored code
    """
    request_context.email = payload.email
    expires_at = await otp_service.request_otp(payload.email, repository)
    return SendOTPResponse(success=True, message="OTP sent to email", expires_at=expires_at)


@candidates_router.post("/verify-otp", response_model=VerifyOTPResponse)
async def verify_otp(payload: VerifyOTPRequest, otp_service: OTPService = Depends(get_otp_service)):
    request_context.email = payload.email
    await otp_service.verify_otp(payload.email, payload.otp)
    return VerifyOTPResponse(success=True, message="Email verified successfully")


@candidates_router.post("", response_model=CandidateRegistrationResponse, status_code=status.HTTP_201_CREATED)
async def create_candidate(
    request: Request,
    background_tasks: BackgroundTasks,
    registration_service: RegistrationService = Depends(get_registration_service),
):
    """
    Complete a registration from a multipart form with an optional
    profile_photo image. The email must have been verified first.
    """
    form = await request.form()
    fields = {key: value for key, value in form.items() if isinstance(value, str)}
    request_context.email = fields.get("email")

    upload = form.get(PROFILE_PHOTO_FIELD)
    if not isinstance(upload, UploadFile):
        upload = None

    candidate = await registration_service.complete_registration(fields, upload, background_tasks)
    return CandidateRegistrationResponse(
        success=True,
        message="Application submitted successfully",
        data=CandidateOut.model_validate(candidate),
    )


@candidates_router.get("/check-email", response_model=ExistsResponse)
async def check_email(
    email: str = Query(None, description="Email to look up"),
    repository: CandidateRepository = Depends(get_candidate_repository),
):
    exists = CandidateService(repository).email_exists(email)
    return ExistsResponse(success=True, exists=exists)


@candidates_router.get("/check-phone", response_model=ExistsResponse)
async def check_phone(
    phone: str = Query(None, description="Phone number (10 digits, 91+10 digits, or +91+10 digits)"),
    repository: CandidateRepository = Depends(get_candidate_repository),
):
    exists = CandidateService(repository).phone_exists(phone)
    return ExistsResponse(success=True, exists=exists)


@candidates_router.get("/company-payment-status", response_model=CompanyPaymentStatusResponse)
async def company_payment_status(
    email: str = Query(None),
    phone: str = Query(None),
    repository: CandidateRepository = Depends(get_candidate_repository),
):
    return CompanyPaymentStatusResponse(**CandidateService(repository).company_payment_status(email, phone))
