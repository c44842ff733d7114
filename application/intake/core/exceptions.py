"""
Intake error taxonomy

Every failure of the OTP and registration flow is an IntakeError carrying the
HTTP status, a stable error code, a human readable message and, where a single
input is at fault, the name of that field.
"""

from typing import Optional

from fastapi import status


class IntakeError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "INTAKE_ERROR"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.error, "message": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(IntakeError):
    error = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class InvalidUpload(ValidationError):
    error = "INVALID_UPLOAD"
    default_message = "Only images are allowed (jpg, jpeg, png, gif)"


class EmailAlreadyRegistered(IntakeError):
    error = "EMAIL_ALREADY_REGISTERED"
    default_message = "Email already registered"


class EmailDeliveryFailed(IntakeError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "EMAIL_DELIVERY_FAILED"
    default_message = "Failed to send OTP. Please try again."


class OTPNotFound(IntakeError):
    error = "OTP_NOT_FOUND"
    default_message = "OTP not found or expired. Please request a new one."


class OTPExpired(IntakeError):
    error = "OTP_EXPIRED"
    default_message = "OTP has expired. Please request a new one."


class OTPCodeMismatch(IntakeError):
    error = "OTP_CODE_MISMATCH"
    default_message = "Invalid OTP. Please try again."


class EmailNotVerified(IntakeError):
    error = "EMAIL_NOT_VERIFIED"
    default_message = "Please verify your email address first."


class DuplicateEmail(IntakeError):
    error = "DUPLICATE_EMAIL"
    default_message = "An application with this email already exists."


class DuplicatePhone(IntakeError):
    error = "DUPLICATE_PHONE"
    default_message = "An application with this phone number already exists."


class RegistrationInProgress(IntakeError):
    status_code = status.HTTP_409_CONFLICT
    error = "REGISTRATION_IN_PROGRESS"
    default_message = "A registration for this email is already being processed. Please retry shortly."


class CandidateNotFound(IntakeError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "CANDIDATE_NOT_FOUND"
    default_message = "Candidate not found"


class PersistenceError(IntakeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "PERSISTENCE_ERROR"
    default_message = "Error submitting application"
