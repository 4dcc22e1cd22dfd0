"""MinIO: upload, download and removal of uploaded documents."""
import io
import uuid
from datetime import timedelta
from pathlib import Path

from minio import Minio

from docchat.config import settings


def _client() -> Minio:
    return Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


def ensure_bucket() -> None:
    client = _client()
    if not client.bucket_exists(settings.minio_bucket):
        client.make_bucket(settings.minio_bucket)


def build_object_key(user_id: str, filename: str) -> str:
    ext = Path(filename).suffix.lower()
    return f"{user_id}/{uuid.uuid4()}{ext}"


def upload_file(user_id: str, filename: str, content_type: str, data: bytes) -> str:
    """Stores the file and returns its object key."""
    ensure_bucket()
    key = build_object_key(user_id, filename)
    client = _client()
    client.put_object(
        settings.minio_bucket,
        key,
        io.BytesIO(data),
        len(data),
        content_type=content_type,
    )
    return key


def get_file(key: str) -> bytes:
    client = _client()
    response = client.get_object(settings.minio_bucket, key)
    try:
        return response.read()
    finally:
        response.close()
        response.release_conn()


def get_file_url(key: str, expires_seconds: int = 3600) -> str:
    """Presigned URL for downloading the original file."""
    client = _client()
    return client.presigned_get_object(
        settings.minio_bucket, key, expires=timedelta(seconds=expires_seconds)
    )


def delete_file(key: str) -> None:
    client = _client()
    client.remove_object(settings.minio_bucket, key)
