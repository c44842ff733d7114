"""
Candidate Model

Durable record of a self-registered candidate (student or hiring company).
"""

from sqlalchemy import Boolean, Column, Index, Integer, String, Text
from intake.core.constants import CandidateStatus, UserType
from intake.models.common import CommonModel


class Candidate(CommonModel):
    """
    A registration admitted after email OTP verification.

    Attributes:
        registration_id: Human readable id per user type (e.g. "STU00001")
        email: Lower-cased email, globally unique
        phone: Normalised phone (+91XXXXXXXXXX), globally unique
        user_type: "student" or "company"
        status: pending, reviewed, contacted or rejected
    """
    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, index=True)
    registration_id = Column(String(20), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    user_type = Column(String(20), nullable=False, default=UserType.STUDENT)

    # Student fields
    course = Column(String(255), nullable=True)
    college = Column(String(255), nullable=True)
    university = Column(String(255), nullable=True)

    # Company fields
    company_name = Column(String(255), nullable=True)
    is_payment_done = Column(Boolean, nullable=False, default=False)

    profile_photo = Column(String(512), nullable=True)
    status = Column(String(20), nullable=False, default=CandidateStatus.PENDING, index=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("uq_candidates_email", "email", unique=True),
        Index("uq_candidates_phone", "phone", unique=True),
        Index("idx_candidates_user_type", "user_type"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "registration_id": self.registration_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "user_type": self.user_type,
            "course": self.course,
            "college": self.college,
            "university": self.university,
            "company_name": self.company_name,
            "is_payment_done": bool(self.is_payment_done),
            "profile_photo": self.profile_photo,
            "status": self.status,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self):
        return f"<Candidate(id={self.id}, registration_id={self.registration_id}, email={self.email}, status={self.status})>"
