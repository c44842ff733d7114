import io
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import BackgroundTasks, UploadFile
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.datastructures import Headers

from intake.core.exceptions import (
    DuplicateEmail,
    DuplicatePhone,
    EmailNotVerified,
    InvalidUpload,
    PersistenceError,
    RegistrationInProgress,
    ValidationError,
)
from intake.models.candidates import Candidate
from intake.services.notification_service import NotificationService
from intake.services.otp_store import OTPEntry
from intake.services.registration_service import RegistrationService
from intake.utils.datetime_helpers import get_utc_now


@pytest.fixture
def service(otp_store, registration_lock, repository, file_storage, email_service):
    return RegistrationService(otp_store, registration_lock, repository, file_storage, NotificationService(email_service))


def make_upload(filename="me.png", content=b"\x89PNG", content_type="image/png"):
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.fixture
def photo():
    return make_upload()


def verify_email(otp_store, email, verified=True):
    otp_store.put(email, OTPEntry(code="123456", expires_at=get_utc_now() + timedelta(minutes=10), verified=verified))


@pytest.mark.asyncio
async def test_verified_registration_creates_pending_candidate(service, otp_store, form_factory, photo,
                                                               stored_photos, db_session):
    verify_email(otp_store, "a@x.com")
    tasks = BackgroundTasks()

    candidate = await service.complete_registration(form_factory(), photo, tasks)

    assert candidate.status == "pending"
    assert candidate.registration_id == "STU00001"
    assert candidate.email == "a@x.com"
    assert candidate.phone == "+919812345678"
    assert stored_photos() == [candidate.profile_photo.rsplit("/", 1)[1]]
    assert candidate.profile_photo.startswith("/candidate_profile/candidate-")
    assert otp_store.get("a@x.com") is None
    assert len(tasks.tasks) == 1
    assert db_session.query(Candidate).count() == 1


@pytest.mark.asyncio
async def test_company_registration(service, otp_store, form_factory):
    verify_email(otp_store, "hr@corp.com")
    form = form_factory(email="hr@corp.com", user_type="company", company_name="Acme Corp",
                        is_payment_done="true", course=None, college=None, university=None)

    candidate = await service.complete_registration(form)

    assert candidate.registration_id == "COMP00001"
    assert candidate.company_name == "Acme Corp"
    assert candidate.is_payment_done is True
    assert candidate.course is None
    assert candidate.profile_photo is None


@pytest.mark.asyncio
async def test_email_is_stored_lower_cased_but_otp_key_is_as_submitted(service, otp_store, form_factory):
    verify_email(otp_store, "A@X.com")

    candidate = await service.complete_registration(form_factory(email="A@X.com"))

    assert candidate.email == "a@x.com"
    assert otp_store.get("A@X.com") is None


@pytest.mark.asyncio
async def test_unverified_email_is_rejected_without_storing_photo(service, otp_store, form_factory, photo,
                                                                  stored_photos, db_session):
    verify_email(otp_store, "a@x.com", verified=False)

    with pytest.raises(EmailNotVerified) as exc:
        await service.complete_registration(form_factory(), photo)

    assert exc.value.field == "email"
    assert stored_photos() == []
    assert otp_store.get("a@x.com") is not None
    assert db_session.query(Candidate).count() == 0


@pytest.mark.asyncio
async def test_unverified_email_wins_over_invalid_payload(service, form_factory):
    with pytest.raises(EmailNotVerified):
        await service.complete_registration(form_factory(phone="12", name=""))


@pytest.mark.asyncio
async def test_unverified_email_wins_over_invalid_upload(service, form_factory, stored_photos):
    with pytest.raises(EmailNotVerified):
        await service.complete_registration(form_factory(), make_upload("cv.pdf", b"%PDF-1.4", "application/pdf"))

    with pytest.raises(EmailNotVerified):
        await service.complete_registration(form_factory(), make_upload(content=b"x" * 5000))

    assert stored_photos() == []


@pytest.mark.asyncio
async def test_missing_email_is_not_verified(service, form_factory, photo, stored_photos):
    with pytest.raises(EmailNotVerified):
        await service.complete_registration(form_factory(email=None), photo)
    assert stored_photos() == []


@pytest.mark.asyncio
async def test_invalid_upload_keeps_verified_entry(service, otp_store, form_factory, stored_photos):
    verify_email(otp_store, "a@x.com")

    with pytest.raises(InvalidUpload) as exc:
        await service.complete_registration(form_factory(), make_upload(content=b"x" * 5000))

    assert exc.value.field == "profile_photo"
    assert otp_store.get("a@x.com").verified is True
    assert stored_photos() == []


@pytest.mark.asyncio
async def test_invalid_payload_keeps_verified_entry(service, otp_store, form_factory, photo, stored_photos):
    verify_email(otp_store, "a@x.com")

    with pytest.raises(ValidationError) as exc:
        await service.complete_registration(form_factory(college=""), photo)

    assert exc.value.field == "college"
    assert exc.value.message == "Course, college, and university are required for students"
    assert otp_store.get("a@x.com").verified is True
    assert stored_photos() == []


@pytest.mark.asyncio
async def test_invalid_phone_reports_phone_field(service, otp_store, form_factory):
    verify_email(otp_store, "a@x.com")

    with pytest.raises(ValidationError) as exc:
        await service.complete_registration(form_factory(phone="12345"))

    assert exc.value.field == "phone"


@pytest.mark.asyncio
async def test_company_requires_company_name(service, otp_store, form_factory):
    verify_email(otp_store, "a@x.com")

    with pytest.raises(ValidationError) as exc:
        await service.complete_registration(form_factory(user_type="company"))

    assert exc.value.field == "company_name"


@pytest.mark.asyncio
async def test_duplicate_email(service, otp_store, form_factory, photo, stored_photos, candidate_factory, db_session):
    candidate_factory(email="a@x.com", phone="+919000000000")
    verify_email(otp_store, "a@x.com")

    with pytest.raises(DuplicateEmail) as exc:
        await service.complete_registration(form_factory(), photo)

    assert exc.value.field == "email"
    assert otp_store.get("a@x.com") is None
    assert stored_photos() == []
    assert db_session.query(Candidate).count() == 1


@pytest.mark.asyncio
async def test_duplicate_phone(service, otp_store, form_factory, photo, stored_photos, candidate_factory, db_session):
    candidate_factory(email="other@x.com", phone="+919812345678")
    verify_email(otp_store, "a@x.com")

    with pytest.raises(DuplicatePhone) as exc:
        await service.complete_registration(form_factory(phone="09812345678"), photo)

    assert exc.value.field == "phone"
    assert stored_photos() == []
    assert db_session.query(Candidate).count() == 1


@pytest.mark.asyncio
async def test_verified_entry_cannot_be_replayed(service, otp_store, form_factory):
    verify_email(otp_store, "a@x.com")
    await service.complete_registration(form_factory())

    with pytest.raises(EmailNotVerified):
        await service.complete_registration(form_factory(phone="9000000001"))


@pytest.mark.asyncio
async def test_lock_held_elsewhere_rejects_registration(service, otp_store, registration_lock, form_factory, photo,
                                                        stored_photos):
    verify_email(otp_store, "a@x.com")
    assert await registration_lock.acquire("a@x.com")

    with pytest.raises(RegistrationInProgress):
        await service.complete_registration(form_factory(), photo)

    assert stored_photos() == []
    assert otp_store.get("a@x.com").verified is True
    assert registration_lock.is_locked("a@x.com")


@pytest.mark.asyncio
async def test_lock_released_after_failure(service, otp_store, registration_lock, form_factory):
    with pytest.raises(EmailNotVerified):
        await service.complete_registration(form_factory())
    assert not registration_lock.is_locked("a@x.com")


@pytest.fixture
def mocked_repository():
    repository = MagicMock()
    repository.find_by_email.return_value = None
    repository.find_by_phone.return_value = None
    return repository


@pytest.fixture
def mocked_service(otp_store, registration_lock, mocked_repository, file_storage, email_service):
    return RegistrationService(otp_store, registration_lock, mocked_repository, file_storage, NotificationService(email_service))


@pytest.mark.asyncio
async def test_unique_index_violation_becomes_duplicate_email(mocked_service, mocked_repository, otp_store,
                                                              form_factory, photo, stored_photos):
    verify_email(otp_store, "a@x.com")
    mocked_repository.find_by_email.side_effect = [None, MagicMock()]
    mocked_repository.create.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

    with pytest.raises(DuplicateEmail):
        await mocked_service.complete_registration(form_factory(), photo)
    assert stored_photos() == []


@pytest.mark.asyncio
async def test_unique_index_violation_becomes_duplicate_phone(mocked_service, mocked_repository, otp_store, form_factory):
    verify_email(otp_store, "a@x.com")
    mocked_repository.find_by_phone.side_effect = [None, MagicMock()]
    mocked_repository.create.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

    with pytest.raises(DuplicatePhone):
        await mocked_service.complete_registration(form_factory())


@pytest.mark.asyncio
async def test_registration_id_collision_is_retried(mocked_service, mocked_repository, otp_store, form_factory):
    verify_email(otp_store, "a@x.com")
    created = MagicMock(id=7, registration_id="STU00002")
    mocked_repository.create.side_effect = [IntegrityError("INSERT", {}, Exception("unique")), created]

    candidate = await mocked_service.complete_registration(form_factory())

    assert candidate is created
    assert mocked_repository.create.call_count == 2


@pytest.mark.asyncio
async def test_registration_id_collisions_exhausted(mocked_service, mocked_repository, otp_store, form_factory):
    verify_email(otp_store, "a@x.com")
    mocked_repository.create.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

    with pytest.raises(PersistenceError):
        await mocked_service.complete_registration(form_factory())
    assert mocked_repository.create.call_count == 3


@pytest.mark.asyncio
async def test_database_failure_on_insert_is_persistence_error(mocked_service, mocked_repository, otp_store,
                                                               form_factory, photo, stored_photos):
    verify_email(otp_store, "a@x.com")
    mocked_repository.create.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))

    with pytest.raises(PersistenceError):
        await mocked_service.complete_registration(form_factory(), photo)
    assert stored_photos() == []


@pytest.mark.asyncio
async def test_database_failure_on_duplicate_check_is_persistence_error(mocked_service, mocked_repository, otp_store,
                                                                        form_factory, photo, stored_photos):
    verify_email(otp_store, "a@x.com")
    mocked_repository.find_by_email.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

    with pytest.raises(PersistenceError):
        await mocked_service.complete_registration(form_factory(), photo)

    mocked_repository.create.assert_not_called()
    assert stored_photos() == []
