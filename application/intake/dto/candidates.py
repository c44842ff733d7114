import re
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from intake.core.constants import CandidateStatus, UserType
from intake.dto.phone_validations import normalize_phone_number

EMAIL_PATTERN = re.compile(r'^\S+@\S+\.\S+$')


class SendOTPRequest(BaseModel):
    """Request model for issuing an email OTP"""
    email: Optional[str] = Field(None, description="Email address to verify, used as submitted")


class SendOTPResponse(BaseModel):
    """Response model for OTP issuance"""
    success: bool
    message: str
    expires_at: datetime


class VerifyOTPRequest(BaseModel):
    """Request model for verifying an email OTP"""
    email: Optional[str] = Field(None, description="Email the OTP was issued for")
    otp: Optional[str] = Field(None, description="6-digit OTP code")


class VerifyOTPResponse(BaseModel):
    success: bool
    message: str


class CandidateRegistrationRequest(BaseModel):
    """
    Registration form submitted after the email has been verified.

    Field order matters: the conditional student/company validators read the
    already validated user_type from ValidationInfo.data.
    """
    name: Optional[str] = Field(None, validate_default=True)
    email: Optional[str] = Field(None, validate_default=True)
    phone: Optional[str] = Field(None, validate_default=True)
    user_type: Optional[str] = Field(UserType.STUDENT, validate_default=True)
    course: Optional[str] = Field(None, validate_default=True)
    college: Optional[str] = Field(None, validate_default=True)
    university: Optional[str] = Field(None, validate_default=True)
    company_name: Optional[str] = Field(None, validate_default=True)
    is_payment_done: bool = Field(False, validate_default=True)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Name is required')
        return v.strip()

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Trim and lower-case the email before storage"""
        if not v or not v.strip():
            raise ValueError('Email is required')
        email = v.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValueError('Please enter a valid email address')
        return email

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        """Validate and normalize phone number"""
        return normalize_phone_number(v or '')

    @field_validator('user_type', mode='before')
    @classmethod
    def validate_user_type(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return UserType.STUDENT
        user_type = str(v).strip().lower()
        if user_type not in UserType.ALL:
            raise ValueError("Invalid user type. Must be either 'student' or 'company'.")
        return user_type

    @field_validator('course', 'college', 'university')
    @classmethod
    def validate_student_fields(cls, v, info: ValidationInfo):
        value = v.strip() if v else None
        if info.data.get('user_type') != UserType.STUDENT:
            return None
        if not value:
            raise ValueError('Course, college, and university are required for students')
        return value

    @field_validator('company_name')
    @classmethod
    def validate_company_name(cls, v, info: ValidationInfo):
        value = v.strip() if v else None
        if info.data.get('user_type') != UserType.COMPANY:
            return None
        if not value:
            raise ValueError('Company name is required')
        return value

    @field_validator('is_payment_done', mode='before')
    @classmethod
    def validate_payment_flag(cls, v, info: ValidationInfo):
        # multipart forms send the flag as text
        if info.data.get('user_type') != UserType.COMPANY:
            return False
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() == 'true' if v is not None else False


def first_validation_error(exc: PydanticValidationError) -> Tuple[Optional[str], str]:
    """Return (field, message) of the first failing field of a pydantic error"""
    errors = exc.errors()
    if not errors:
        return None, 'Invalid request data'
    error = errors[0]
    loc = error.get('loc') or ()
    field = str(loc[0]) if loc else None
    message = error.get('msg', 'Invalid value')
    if message.startswith('Value error, '):
        message = message[len('Value error, '):]
    return field, message


class CandidateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: Optional[str] = None
    name: str
    email: str
    phone: str
    user_type: str
    course: Optional[str] = None
    college: Optional[str] = None
    university: Optional[str] = None
    company_name: Optional[str] = None
    is_payment_done: bool = False
    profile_photo: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CandidateRegistrationResponse(BaseModel):
    success: bool
    message: str
    data: CandidateOut


class ExistsResponse(BaseModel):
    success: bool
    exists: bool


class CompanyPaymentStatusResponse(BaseModel):
    exists: bool
    user_type: Optional[str] = None
    is_payment_done: Optional[bool] = None


class CandidateListResponse(BaseModel):
    success: bool
    count: int
    total: int
    page: int
    page_size: int
    data: List[CandidateOut]


class CandidateDetailResponse(BaseModel):
    success: bool
    data: CandidateOut


class CandidateStatusUpdateRequest(BaseModel):
    """Admin review update of a candidate"""
    status: str = Field(..., description="pending, reviewed, contacted or rejected")
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        status = v.strip().lower()
        if status not in CandidateStatus.ALL:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(CandidateStatus.ALL)}")
        return status

    @field_validator('notes')
    @classmethod
    def strip_notes(cls, v):
        return v.strip() if v else v
