"""
Local disk storage for candidate profile photos.
"""

import os
import random
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

from intake.config.settings import IntakeConfigs
from intake.core.constants import UploadRules
from intake.core.exceptions import InvalidUpload
from intake.logging.utils import get_app_logger

logger = get_app_logger("intake.file_storage")
configs = IntakeConfigs()

PROFILE_PHOTO_FIELD = "profile_photo"
PROFILE_PHOTO_SUBDIR = "candidate_profile"


@dataclass
class StoredFile:
    path: str
    filename: str
    url: str
    content_type: Optional[str] = None
    size: int = 0


class LocalFileStorage:

    def __init__(self, base_dir: Optional[str] = None, max_bytes: Optional[int] = None,
                 url_prefix: Optional[str] = None):
        self.base_dir = base_dir or configs.UPLOAD_DIR
        self.max_bytes = max_bytes or configs.MAX_UPLOAD_BYTES
        self.url_prefix = (url_prefix or configs.PROFILE_PHOTO_URL_PREFIX).rstrip("/")

    @property
    def upload_dir(self) -> str:
        return os.path.join(self.base_dir, PROFILE_PHOTO_SUBDIR)

    def ensure_upload_dir(self) -> str:
        os.makedirs(self.upload_dir, exist_ok=True)
        return self.upload_dir

    @staticmethod
    def generate_filename(extension: str) -> str:
        return f"candidate-{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}{extension}"

    def validate(self, filename: str, content_type: Optional[str]) -> str:
        """Return the lower-cased extension of an accepted image, else raise InvalidUpload"""
        extension = os.path.splitext(filename or "")[1].lower()
        if extension not in UploadRules.ALLOWED_EXTENSIONS or (content_type or "").lower() not in UploadRules.ALLOWED_CONTENT_TYPES:
            logger.warning(f"upload_rejected | filename={filename} content_type={content_type}")
            raise InvalidUpload(field=PROFILE_PHOTO_FIELD)
        return extension

    async def save(self, upload: Optional[UploadFile]) -> Optional[StoredFile]:
        """Persist an uploaded photo; None when no file was sent."""
        if upload is None or not upload.filename:
            return None

        extension = self.validate(upload.filename, upload.content_type)
        content = await upload.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            logger.warning(f"upload_rejected | filename={upload.filename} reason=too_large")
            raise InvalidUpload(
                f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB",
                field=PROFILE_PHOTO_FIELD,
            )

        filename = self.generate_filename(extension)
        path = os.path.join(self.ensure_upload_dir(), filename)
        with open(path, "wb") as f:
            f.write(content)

        logger.info(f"upload_saved | path={path} size={len(content)}")
        return StoredFile(
            path=path,
            filename=filename,
            url=f"{self.url_prefix}/{filename}",
            content_type=upload.content_type,
            size=len(content),
        )

    def delete(self, stored: Optional[StoredFile]) -> bool:
        """Best-effort removal; errors are logged and never raised."""
        if stored is None:
            return False
        try:
            if os.path.exists(stored.path):
                os.remove(stored.path)
                logger.info(f"upload_deleted | path={stored.path}")
                return True
        except OSError as e:
            logger.error(f"upload_delete_failed | path={stored.path} error={e}")
        return False


_file_storage: Optional[LocalFileStorage] = None


def get_file_storage() -> LocalFileStorage:
    global _file_storage
    if _file_storage is None:
        _file_storage = LocalFileStorage()
    return _file_storage
