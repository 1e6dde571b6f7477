"""MinIO (S3-compatible) client for avatar objects."""

from minio import Minio

from app.core.config import settings

minio_client = Minio(
    settings.MINIO_ENDPOINT,
    access_key=settings.MINIO_ACCESS_KEY,
    secret_key=settings.MINIO_SECRET_KEY.get_secret_value(),
    secure=settings.MINIO_USE_SSL,
)


def get_object_store() -> Minio:
    """Dependency returning the shared MinIO client."""
    return minio_client


def public_object_url(bucket: str, object_name: str) -> str:
    """URL under which an uploaded object is served by the object store."""
    scheme = "https" if settings.MINIO_USE_SSL else "http"
    return f"{scheme}://{settings.MINIO_ENDPOINT}/{bucket}/{object_name}"
