"""File storage for case documents and message attachments.

Files are addressed by storage key and kept either on local disk or in S3:
    cases/{case_id}/{uuid}.{ext}
    messages/{case_id}/{message_id}/{uuid}.{ext}
"""

import hashlib
import logging
import os
import uuid
from dataclasses import dataclass

import boto3
from botocore.exceptions import ClientError

from caseportal.core.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "application/dicom",
}


@dataclass
class IncomingFile:
    """An uploaded file already read into memory."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    """Get boto3 S3 client."""
    return boto3.client("s3", region_name=settings.S3_REGION)


def _get_storage_backend() -> str:
    return settings.STORAGE_BACKEND


def _get_local_storage_path() -> str:
    """Get local storage directory path."""
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _local_path(storage_key: str) -> str:
    root = os.path.abspath(_get_local_storage_path())
    path = os.path.abspath(os.path.join(root, storage_key))
    if not path.startswith(root + os.sep):
        raise ValueError("Invalid storage key")
    return path


# =============================================================================
# File Operations
# =============================================================================

def calculate_checksum(data: bytes) -> str:
    """Calculate SHA-256 checksum of file contents."""
    return hashlib.sha256(data).hexdigest()


def validate_file(content_type: str, file_size: int) -> tuple[bool, str | None]:
    """
    Validate file against the MIME allowlist and size limit.

    Returns (is_valid, error_message)
    """
    if content_type not in ALLOWED_MIME_TYPES:
        return False, f"Content type '{content_type}' not allowed"

    if file_size <= 0:
        return False, "File is empty"

    if file_size > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        return False, f"File size exceeds {max_mb:.0f} MB limit"

    return True, None


def _extension(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return "".join(ch for ch in ext if ch.isalnum())[:10] or "bin"


def case_document_key(case_id: uuid.UUID, filename: str) -> str:
    return f"cases/{case_id}/{uuid.uuid4()}.{_extension(filename)}"


def message_attachment_key(case_id: uuid.UUID, message_id: uuid.UUID, filename: str) -> str:
    return f"messages/{case_id}/{message_id}/{uuid.uuid4()}.{_extension(filename)}"


def store_file(storage_key: str, data: bytes, content_type: str | None = None) -> None:
    """Store file to configured backend."""
    if _get_storage_backend() == "s3":
        extra = {"ContentType": content_type} if content_type else {}
        _get_s3_client().put_object(
            Bucket=settings.S3_BUCKET, Key=storage_key, Body=data, **extra
        )
        return

    path = _local_path(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


def read_file(storage_key: str) -> bytes | None:
    """Read stored bytes, or None if the object is missing."""
    if _get_storage_backend() == "s3":
        try:
            obj = _get_s3_client().get_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            raise
        return obj["Body"].read()

    path = _local_path(storage_key)
    if not os.path.exists(path):
        return None
    with open(path, "rb") as f:
        return f.read()


def delete_file(storage_key: str) -> None:
    """Delete file from storage. Missing files are ignored."""
    if _get_storage_backend() == "s3":
        _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        return

    path = _local_path(storage_key)
    if os.path.exists(path):
        os.remove(path)
