"""Avatar upload: validate an image and store it in the MinIO bucket."""

from __future__ import annotations

import io
import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import urllib3
from minio import Minio
from minio.error import MinioException

from app.core.context import RequestContext
from app.core.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

# S3 bucket naming: 3-63 chars, lowercase letters, digits, dots and hyphens.
_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")

# (magic prefix, content type, extension)
_IMAGE_SIGNATURES = (
    (b"\xff\xd8\xff", "image/jpeg", ".jpg"),
    (b"\x89PNG\r\n\x1a\n", "image/png", ".png"),
    (b"GIF87a", "image/gif", ".gif"),
    (b"GIF89a", "image/gif", ".gif"),
)


@dataclass(frozen=True)
class AvatarUpload:
    """Raw uploaded file as received from the multipart form."""

    filename: str
    content: bytes


def detect_image_type(content: bytes) -> tuple[str, str] | None:
    """Return (content_type, extension) from the file's leading bytes, or None."""
    for magic, content_type, ext in _IMAGE_SIGNATURES:
        if content.startswith(magic):
            return content_type, ext
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp", ".webp"
    return None


def validate_bucket_name(bucket: str) -> str:
    name = bucket.strip()
    if not _BUCKET_RE.match(name) or ".." in name:
        raise ValidationError("Invalid bucket name.")
    return name


class AvatarUploader:
    def __init__(
        self,
        client: Minio,
        max_bytes: int,
        url_for: Callable[[str, str], str],
    ) -> None:
        self._client = client
        self._max_bytes = max_bytes
        self._url_for = url_for

    def upload(self, ctx: RequestContext, upload: AvatarUpload, bucket: str) -> str:
        """
        Store the image under a random object name and return its URL.
        Raises ValidationError for empty, oversized or non-image files.
        """
        bucket = validate_bucket_name(bucket)
        if not upload.content:
            raise ValidationError("Uploaded file is empty.")
        if len(upload.content) > self._max_bytes:
            raise ValidationError(
                f"File size must not exceed {self._max_bytes // 1024} KB."
            )
        detected = detect_image_type(upload.content)
        if detected is None:
            raise ValidationError("Uploaded file must be a JPEG, PNG, GIF or WebP image.")
        content_type, ext = detected
        object_name = f"{uuid.uuid4()}{ext}"

        ctx.check_deadline("upload avatar")
        try:
            self._client.put_object(
                bucket,
                object_name,
                io.BytesIO(upload.content),
                length=len(upload.content),
                content_type=content_type,
            )
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            raise StorageError("Object store failed during avatar upload", cause=e) from e
        logger.info(
            "Avatar uploaded: bucket=%s object=%s bytes=%s",
            bucket,
            object_name,
            len(upload.content),
        )
        return self._url_for(bucket, object_name)
