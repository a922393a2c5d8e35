"""
Upload Storage Service.

Issues short-lived write credentials so the portal client can push image
bytes straight to storage without routing them through the record API:

- Local backend: HMAC-signed URLs served by this application's blob endpoint
- S3 backend: presigned ``put_object`` URLs generated with aioboto3

Both backends hand out opaque keys of the form ``{prefix}/{uuid}{ext}`` and
resolve a key into a retrievable URL with ``object_url``.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import mimetypes
import re
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlencode

import aioboto3
import aiofiles
from botocore.exceptions import BotoCoreError, ClientError

from ..core.exceptions import (
    FileValidationError,
    InvalidUploadSignatureError,
    NotFoundError,
    PayloadTooLargeError,
)

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+(/[A-Za-z0-9_\-]+)*\.[A-Za-z0-9]+$")


class StorageBackend(str, Enum):
    """Supported storage backends."""

    LOCAL = "local"
    S3 = "s3"


@dataclass(frozen=True)
class UploadAuthorization:
    """Write credential for a single object."""

    presigned_url: str
    key: str
    expires_in: int


class UploadStorageError(Exception):
    """Base exception for storage backend failures."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


def _get_extension(file_name: str) -> str:
    """Extract file extension from filename."""
    ext = Path(file_name).suffix.lower()
    return ext if ext else ".bin"


def _detect_mime_type(file_name: str) -> str:
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or "application/octet-stream"


def is_valid_key(key: str) -> bool:
    """Keys are slash-separated safe segments ending in an extension."""
    return bool(_KEY_PATTERN.match(key))


def build_object_key(prefix: str, file_name: str) -> str:
    """Generate a fresh, collision-free key that keeps the file's extension."""
    extension = re.sub(r"[^a-z0-9.]", "", _get_extension(file_name)) or ".bin"
    return f"{prefix.strip('/')}/{uuid.uuid4().hex}{extension}"


class LocalUploadStorage:
    """
    Filesystem storage addressed through signed URLs.

    The signature covers the key, the expiry timestamp and the content type,
    so a URL cannot be replayed for another object, after expiry, or with a
    different type than the one that was authorized.
    """

    def __init__(
        self,
        base_path: str | Path,
        public_base_url: str,
        base_url: str,
        secret_key: str,
        prefix: str = "providers",
        url_expiry: int = 300,
        max_file_size: int = 10 * 1024 * 1024,
    ):
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")
        self.base_url = base_url.rstrip("/")
        self.prefix = prefix.strip("/")
        self.url_expiry = url_expiry
        self.max_file_size = max_file_size
        self._secret = secret_key.encode("utf-8")
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local upload storage initialized at: {self.base_path.absolute()}")

    def _sign(self, key: str, expires: int, content_type: str) -> str:
        message = f"{key}\n{expires}\n{content_type.lower()}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def _resolve_path(self, key: str) -> Path:
        if not is_valid_key(key):
            raise NotFoundError(message=f"Blob not found: {key}", resource_type="blob", resource_id=key)
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise NotFoundError(message=f"Blob not found: {key}", resource_type="blob", resource_id=key)
        return path

    def object_url(self, key: str) -> str:
        return f"{self.public_base_url}{self.base_url}/{key}"

    async def create_upload_authorization(self, file_name: str, content_type: str) -> UploadAuthorization:
        key = build_object_key(self.prefix, file_name)
        expires = int(time.time()) + self.url_expiry
        query = urlencode({
            "expires": expires,
            "signature": self._sign(key, expires, content_type),
        })
        logger.info(f"Issued local upload URL: key={key}, expires_in={self.url_expiry}")
        return UploadAuthorization(
            presigned_url=f"{self.object_url(key)}?{query}",
            key=key,
            expires_in=self.url_expiry,
        )

    def verify_upload(self, key: str, expires: int, signature: str, content_type: str) -> None:
        """Check a signed URL's parameters; raises InvalidUploadSignatureError."""
        if expires < int(time.time()):
            raise InvalidUploadSignatureError(key, "URL has expired")
        expected = self._sign(key, expires, content_type)
        if not hmac.compare_digest(expected, signature):
            raise InvalidUploadSignatureError(key, "signature mismatch")

    async def write_blob(self, key: str, content: bytes) -> int:
        """Store *content* under *key*; returns the number of bytes written."""
        if len(content) > self.max_file_size:
            raise PayloadTooLargeError(
                message=f"File too large: {len(content)} bytes",
                limit=self.max_file_size,
            )
        path = self._resolve_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)
        logger.info(f"Blob stored: key={key}, size={len(content)} bytes")
        return len(content)

    async def read_blob(self, key: str) -> tuple[bytes, str]:
        """Return (content, mime type) of a stored blob."""
        path = self._resolve_path(key)
        if not path.is_file():
            raise NotFoundError(message=f"Blob not found: {key}", resource_type="blob", resource_id=key)
        async with aiofiles.open(path, "rb") as f:
            content = await f.read()
        return content, _detect_mime_type(path.name)


class S3UploadStorage:
    """
    AWS S3 storage addressed through presigned PUT URLs.

    Production considerations:
    - The bucket CORS policy must allow PUT from the portal origin
    - Objects are public-read through the bucket policy; URLs are not signed
    """

    def __init__(
        self,
        bucket_name: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        prefix: str = "providers",
        url_expiry: int = 300,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.prefix = prefix.strip("/")
        self.url_expiry = url_expiry
        self.session = aioboto3.Session(
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )
        logger.info(f"S3 upload storage initialized: bucket={bucket_name}, region={region}, prefix={prefix}")

    def object_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def create_upload_authorization(self, file_name: str, content_type: str) -> UploadAuthorization:
        key = build_object_key(self.prefix, file_name)
        try:
            async with self.session.client("s3") as s3_client:
                url = await s3_client.generate_presigned_url(
                    "put_object",
                    Params={
                        "Bucket": self.bucket_name,
                        "Key": key,
                        "ContentType": content_type,
                    },
                    ExpiresIn=self.url_expiry,
                )
        except (ClientError, BotoCoreError) as e:
            logger.exception(f"S3 presign failed for {file_name}")
            raise UploadStorageError(f"S3 presign failed: {e}", e) from e

        logger.info(f"Issued S3 upload URL: key={key}, expires_in={self.url_expiry}")
        return UploadAuthorization(presigned_url=url, key=key, expires_in=self.url_expiry)


UploadStorage = LocalUploadStorage | S3UploadStorage


# =============================================================================
# Factory Pattern for Storage Backend Selection
# =============================================================================

class UploadStorageFactory:
    """Selects the storage backend from configuration."""

    @staticmethod
    def create(settings) -> UploadStorage:
        """
        Create the upload storage service for ``settings.STORAGE_BACKEND``.

        Raises:
            ValueError: If the backend is unknown or required settings are missing
        """
        backend = settings.STORAGE_BACKEND.lower()

        if backend == StorageBackend.LOCAL.value:
            return LocalUploadStorage(
                base_path=settings.BLOB_STORAGE_PATH,
                public_base_url=settings.PUBLIC_BASE_URL,
                base_url=settings.BLOB_BASE_URL,
                secret_key=settings.SECRET_KEY,
                prefix=settings.AWS_S3_PREFIX,
                url_expiry=settings.UPLOAD_URL_EXPIRY_SECONDS,
                max_file_size=settings.max_file_size_bytes,
            )

        if backend == StorageBackend.S3.value:
            for name in ("AWS_S3_BUCKET", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"):
                if not getattr(settings, name):
                    raise ValueError(
                        f"{name} is required when STORAGE_BACKEND=s3. "
                        "Set it in your .env file or environment variables."
                    )
            return S3UploadStorage(
                bucket_name=settings.AWS_S3_BUCKET,
                access_key_id=settings.AWS_ACCESS_KEY_ID,
                secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region=settings.AWS_REGION,
                prefix=settings.AWS_S3_PREFIX,
                url_expiry=settings.UPLOAD_URL_EXPIRY_SECONDS,
            )

        raise ValueError(
            f"Invalid STORAGE_BACKEND: '{backend}'. Must be 'local' or 's3'."
        )


def ensure_image_content_type(file_name: str, content_type: str, allowed: list[str]) -> None:
    """Only profile images may be signed for direct upload."""
    if content_type.lower() not in allowed:
        raise FileValidationError(
            "Only JPG/PNG image files are allowed for this field.",
            filename=file_name,
            allowed_types=allowed,
        )


_upload_storage: UploadStorage | None = None


def get_upload_storage() -> UploadStorage:
    """Get or create the upload storage singleton."""
    global _upload_storage

    if _upload_storage is None:
        from ..core.config import get_settings

        _upload_storage = UploadStorageFactory.create(get_settings())

    return _upload_storage


def reset_upload_storage() -> None:
    """Reset the singleton instance (useful for testing)."""
    global _upload_storage
    _upload_storage = None
