import os
import tempfile

# Set env vars BEFORE any intake imports; settings are read at import time
_tmp_root = tempfile.mkdtemp(prefix="intake-tests-")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OTP_STORE_BACKEND"] = "memory"
os.environ["LOG_DIR"] = os.path.join(_tmp_root, "logs")
os.environ["UPLOAD_DIR"] = os.path.join(_tmp_root, "public")
os.environ["SMTP_HOST"] = "smtp.example.com"
os.environ["EMAIL_FROM"] = "noreply@example.com"
os.environ["ADMIN_NOTIFICATION_EMAIL"] = "admin@example.com"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["AUTH_SERVICE_URL"] = ""
os.environ["SENTRY_ENABLED"] = "false"
os.environ["FIREHOSE_ENABLED"] = "false"
os.environ["AUDIT_LOGGING_ENABLED"] = "false"
os.environ["SLACK_WEBHOOK_URL"] = ""
os.environ["DEBUG"] = "true"

import pytest
from httpx import AsyncClient, ASGITransport

from intake.connections.database import Base, SessionLocal, engine
from intake.main import app
from intake.models.candidates import Candidate
from intake.repository.candidates import CandidateRepository
from intake.services.email_service import EmailSendError, EmailService, get_email_service
from intake.services.file_storage import LocalFileStorage, get_file_storage
from intake.services.otp_store import InMemoryOTPStore, get_otp_store
from intake.services.registration_lock import InMemoryRegistrationLock, get_registration_lock

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}


class FakeEmailService(EmailService):
    """Records messages instead of talking to SMTP"""

    def __init__(self):
        super().__init__()
        self.sent = []
        self.fail = False

    async def send(self, to, subject, text, html=None):
        if self.fail:
            raise EmailSendError("smtp down")
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repository(db_session):
    return CandidateRepository(db_session)


@pytest.fixture
def otp_store():
    return InMemoryOTPStore()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def registration_lock():
    return InMemoryRegistrationLock()


@pytest.fixture
def file_storage(tmp_path):
    return LocalFileStorage(base_dir=str(tmp_path), max_bytes=1024, url_prefix="/candidate_profile")


@pytest.fixture
def client(db_session, otp_store, email_service, registration_lock, file_storage):
    app.dependency_overrides[get_otp_store] = lambda: otp_store
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_registration_lock] = lambda: registration_lock
    app.dependency_overrides[get_file_storage] = lambda: file_storage
    transport = ASGITransport(app=app)
    yield AsyncClient(transport=transport, base_url="http://test")
    app.dependency_overrides = {}


def make_candidate(db_session, **overrides) -> Candidate:
    data = {
        "name": "Existing Student",
        "email": "existing@example.com",
        "phone": "+919876543210",
        "user_type": "student",
        "course": "B.Tech",
        "college": "ABC College",
        "university": "XYZ University",
    }
    data.update(overrides)
    return CandidateRepository(db_session).create(data)


def registration_form(**overrides) -> dict:
    form = {
        "name": "Asha Verma",
        "email": "a@x.com",
        "phone": "9812345678",
        "course": "B.Tech",
        "college": "ABC College",
        "university": "XYZ University",
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


@pytest.fixture
def candidate_factory(db_session):
    return lambda **overrides: make_candidate(db_session, **overrides)


@pytest.fixture
def form_factory():
    return registration_form


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)


@pytest.fixture
def stored_photos(file_storage):
    """Names of the profile photos currently on disk"""
    def _list():
        if not os.path.isdir(file_storage.upload_dir):
            return []
        return sorted(os.listdir(file_storage.upload_dir))
    return _list
