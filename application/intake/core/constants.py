"""
Core constants for the candidate intake service

Candidate lifecycle statuses, registration types and OTP storage keys.
"""

class CandidateStatus:
    """Review status of a registered candidate"""

    PENDING = "pending"
    REVIEWED = "reviewed"
    CONTACTED = "contacted"
    REJECTED = "rejected"

    ALL = [PENDING, REVIEWED, CONTACTED, REJECTED]


class UserType:
    """Who is registering: an individual student or a hiring company"""

    STUDENT = "student"
    COMPANY = "company"

    ALL = [STUDENT, COMPANY]

    # Prefix used for the human readable registration id (STU00001, COMP00001)
    REGISTRATION_PREFIX = {
        STUDENT: "STU",
        COMPANY: "COMP",
    }


class CacheKeys:
    OTP_PREFIX = "candidate_otp:"
    REGISTRATION_LOCK_PREFIX = "candidate_registration_lock:"


class UploadRules:
    ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}
    ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}
