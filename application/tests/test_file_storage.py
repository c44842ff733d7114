import io
import os

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from intake.core.exceptions import InvalidUpload
from intake.services.file_storage import StoredFile


def _upload(filename, content, content_type):
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.mark.asyncio
async def test_save_writes_image(file_storage):
    stored = await file_storage.save(_upload("Me.JPG", b"\xff\xd8\xff", "image/jpeg"))

    assert stored.filename.startswith("candidate-")
    assert stored.filename.endswith(".jpg")
    assert stored.url == f"/candidate_profile/{stored.filename}"
    with open(stored.path, "rb") as f:
        assert f.read() == b"\xff\xd8\xff"


@pytest.mark.asyncio
async def test_save_without_file(file_storage):
    assert await file_storage.save(None) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("filename,content_type", [
    ("notes.pdf", "application/pdf"),
    ("photo.png", "application/pdf"),
    ("photo.exe", "image/png"),
])
async def test_save_rejects_non_images(file_storage, filename, content_type):
    with pytest.raises(InvalidUpload) as exc:
        await file_storage.save(_upload(filename, b"data", content_type))
    assert exc.value.field == "profile_photo"


@pytest.mark.asyncio
async def test_save_rejects_large_files(file_storage):
    with pytest.raises(InvalidUpload):
        await file_storage.save(_upload("big.png", b"x" * (file_storage.max_bytes + 1), "image/png"))
    assert not os.path.exists(file_storage.upload_dir) or os.listdir(file_storage.upload_dir) == []


@pytest.mark.asyncio
async def test_delete_is_best_effort(file_storage):
    stored = await file_storage.save(_upload("a.gif", b"GIF89a", "image/gif"))

    assert file_storage.delete(stored) is True
    assert file_storage.delete(stored) is False
    assert file_storage.delete(None) is False
    assert file_storage.delete(StoredFile(path="/nonexistent/x.png", filename="x.png", url="/x.png")) is False
