"""
Candidate Repository

Handles database operations for candidate registrations.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from intake.core.constants import UserType
from intake.logging.utils import get_app_logger
from intake.models.candidates import Candidate

logger = get_app_logger("intake.candidate_repository")


class CandidateRepository:
    """Repository for candidate operations"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[Candidate]:
        if not email:
            return None
        return self.db.query(Candidate).filter(Candidate.email == email.strip().lower()).first()

    def find_by_phone(self, phone: str) -> Optional[Candidate]:
        if not phone:
            return None
        return self.db.query(Candidate).filter(Candidate.phone == phone).first()

    def find_company(self, email: str, phone: str) -> Optional[Candidate]:
        return (
            self.db.query(Candidate)
            .filter(
                Candidate.email == email.strip().lower(),
                Candidate.phone == phone,
                Candidate.user_type == UserType.COMPANY,
            )
            .first()
        )

    def get_by_id(self, candidate_id: int) -> Optional[Candidate]:
        return self.db.query(Candidate).filter(Candidate.id == candidate_id).first()

    def count_by_user_type(self, user_type: str) -> int:
        return self.db.query(func.count(Candidate.id)).filter(Candidate.user_type == user_type).scalar() or 0

    def next_registration_id(self, user_type: str) -> str:
        """STU00001 / COMP00001 style id: prefix plus per-type count + 1"""
        prefix = UserType.REGISTRATION_PREFIX.get(user_type, UserType.REGISTRATION_PREFIX[UserType.STUDENT])
        count = self.count_by_user_type(user_type)
        return f"{prefix}{str(count + 1).zfill(5)}"

    def create(self, data: Dict[str, Any]) -> Candidate:
        """
        Insert a candidate and commit.

        Raises the underlying SQLAlchemy error after rolling back, so callers
        can classify unique index violations.
        """
        candidate = Candidate(**data)
        if not candidate.registration_id:
            candidate.registration_id = self.next_registration_id(candidate.user_type)
        self.db.add(candidate)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(candidate)
        logger.info(f"candidate_created | id={candidate.id} registration_id={candidate.registration_id} user_type={candidate.user_type}")
        return candidate

    def list(
        self,
        status: Optional[str] = None,
        user_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Candidate], int]:
        query = self.db.query(Candidate)
        if status:
            query = query.filter(Candidate.status == status)
        if user_type:
            query = query.filter(Candidate.user_type == user_type)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Candidate.name.ilike(pattern),
                Candidate.email.ilike(pattern),
                Candidate.phone.ilike(pattern),
                Candidate.registration_id.ilike(pattern),
                Candidate.company_name.ilike(pattern),
            ))
        total = query.count()
        rows = (
            query.order_by(Candidate.created_at.desc(), Candidate.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        logger.info(f"list_candidates | status={status} user_type={user_type} page={page} count={len(rows)} total={total}")
        return rows, total

    def update_status(self, candidate: Candidate, status: str, notes: Optional[str] = None) -> Candidate:
        candidate.status = status
        if notes is not None:
            candidate.notes = notes
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(candidate)
        logger.info(f"candidate_status_updated | id={candidate.id} status={status}")
        return candidate
