from typing import List, Optional, Tuple

from intake.core.constants import CandidateStatus, UserType
from intake.core.exceptions import CandidateNotFound, ValidationError
from intake.dto.phone_validations import normalize_phone_or_none
from intake.logging.utils import get_app_logger
from intake.models.candidates import Candidate
from intake.repository.candidates import CandidateRepository

logger = get_app_logger(__name__)

MAX_PAGE_SIZE = 100


class CandidateService:
    """Lookups for the public form and review operations for admins"""

    def __init__(self, repository: CandidateRepository):
        self.repository = repository

    def email_exists(self, email: Optional[str]) -> bool:
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")
        return self.repository.find_by_email(email) is not None

    def phone_exists(self, phone: Optional[str]) -> bool:
        if not phone or not phone.strip():
            raise ValidationError("Phone number is required", field="phone")
        normalized = normalize_phone_or_none(phone)
        if normalized is None:
            return False
        return self.repository.find_by_phone(normalized) is not None

    def company_payment_status(self, email: Optional[str], phone: Optional[str]) -> dict:
        if not email or not phone:
            raise ValidationError("Email and phone are required")
        normalized = normalize_phone_or_none(phone)
        candidate = self.repository.find_company(email, normalized) if normalized else None
        logger.info(f"company_payment_status | email={email} exists={candidate is not None}")
        if candidate is None:
            return {"exists": False, "user_type": None, "is_payment_done": None}
        return {
            "exists": True,
            "user_type": candidate.user_type,
            "is_payment_done": bool(candidate.is_payment_done),
        }

    def list_candidates(
        self,
        status: Optional[str] = None,
        user_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Candidate], int]:
        if status and status not in CandidateStatus.ALL:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(CandidateStatus.ALL)}", field="status")
        if user_type and user_type not in UserType.ALL:
            raise ValidationError("Invalid user type. Must be either 'student' or 'company'.", field="user_type")
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        return self.repository.list(status=status, user_type=user_type, search=search, page=page, page_size=page_size)

    def get_candidate(self, candidate_id: int) -> Candidate:
        candidate = self.repository.get_by_id(candidate_id)
        if candidate is None:
            raise CandidateNotFound()
        return candidate

    def update_status(self, candidate_id: int, status: str, notes: Optional[str] = None) -> Candidate:
        candidate = self.get_candidate(candidate_id)
        return self.repository.update_status(candidate, status, notes)
