"""
Object storage for chat media and avatars

A bucket on the local filesystem. Objects are keyed by the owning identity:
``{identity}/{timestamp_ms}.{ext}`` for chat media and
``{identity}/avatar.{ext}`` for avatars, and are served from a public URL.
"""
import logging
import mimetypes
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import UUID

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.models.enums import MediaType
from app.utils.time_utils import epoch_millis

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024
_EXTENSION = re.compile(r"^[a-z0-9]{1,10}$")


class UploadKind(str, Enum):
    CHAT_MEDIA = "chat_media"
    AVATAR = "avatar"


@dataclass
class StoredObject:
    """An object written to the bucket"""
    key: str
    public_url: str
    content_type: str
    size: int
    media_type: MediaType


def media_type_for(content_type: Optional[str]) -> Optional[MediaType]:
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return MediaType.IMAGE
    if content_type.startswith("video/"):
        return MediaType.VIDEO
    return None


def max_upload_bytes(kind: UploadKind) -> int:
    if kind == UploadKind.AVATAR:
        return settings.MAX_AVATAR_MB * MEGABYTE
    return settings.MAX_CHAT_MEDIA_MB * MEGABYTE


def validate_upload(content_type: Optional[str], size: int, kind: UploadKind) -> MediaType:
    """
    Check an upload before anything is written.

    Chat media must be an image or a video, avatars must be an image, and
    both are capped (50MB / 5MB by default). Returns the media kind.
    """
    media_type = media_type_for(content_type)
    if kind == UploadKind.AVATAR:
        if media_type != MediaType.IMAGE:
            raise ValidationError("Avatar must be an image")
    elif media_type is None:
        raise ValidationError("Only images and videos are allowed")

    if size <= 0:
        raise ValidationError("Upload is empty")
    limit = max_upload_bytes(kind)
    if size > limit:
        raise ValidationError(f"File size must be less than {limit // MEGABYTE}MB")
    return media_type


async def read_upload(file: UploadFile, kind: UploadKind) -> bytes:
    """
    Read an uploaded file, stopping one byte past the size cap.

    The declared size is checked first when the client sent one.
    """
    limit = max_upload_bytes(kind)
    too_large = ValidationError(f"File size must be less than {limit // MEGABYTE}MB")
    if file.size is not None and file.size > limit:
        raise too_large
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise too_large
    return data


def file_extension(filename: Optional[str], content_type: Optional[str]) -> str:
    """Extension taken from the file name, falling back to the MIME type"""
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    if _EXTENSION.match(suffix):
        return suffix
    guessed = mimetypes.guess_extension(content_type or "") or ""
    guessed = guessed.lstrip(".")
    return guessed if _EXTENSION.match(guessed) else "bin"


class StorageService:
    """Filesystem-backed bucket returning public URLs"""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None, bucket: Optional[str] = None):
        self.bucket = bucket or settings.MEDIA_BUCKET
        self.root = Path(root or settings.MEDIA_ROOT) / self.bucket
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{self.bucket}/{key}"

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValidationError("Invalid object key")
        return path

    def _write(self, key: str, data: bytes) -> Path:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def upload_chat_media(
        self, owner_id: UUID, filename: Optional[str], content_type: Optional[str], data: bytes
    ) -> StoredObject:
        """Store a chat attachment under ``{owner}/{timestamp}.{ext}``"""
        media_type = validate_upload(content_type, len(data), UploadKind.CHAT_MEDIA)
        key = f"{owner_id}/{epoch_millis()}.{file_extension(filename, content_type)}"
        self._write(key, data)
        logger.info(f"Stored chat media {key} ({len(data)} bytes)")
        return StoredObject(key, self.public_url(key), content_type, len(data), media_type)

    def upload_avatar(
        self, owner_id: UUID, filename: Optional[str], content_type: Optional[str], data: bytes
    ) -> StoredObject:
        """Store (or replace) the avatar under ``{owner}/avatar.{ext}``"""
        media_type = validate_upload(content_type, len(data), UploadKind.AVATAR)
        key = f"{owner_id}/avatar.{file_extension(filename, content_type)}"
        self._write(key, data)
        logger.info(f"Stored avatar {key} ({len(data)} bytes)")
        return StoredObject(key, self.public_url(key), content_type, len(data), media_type)

    def delete_object(self, owner_id: UUID, key: str) -> None:
        """Delete an object; owners may only delete inside their own folder"""
        if key.split("/", 1)[0] != str(owner_id):
            raise NotFoundError("Object not found")
        path = self.path_for(key)
        if not path.exists():
            raise NotFoundError("Object not found")
        path.unlink()
        logger.info(f"Deleted object {key}")


storage_service = StorageService()
