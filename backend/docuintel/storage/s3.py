"""
S3 Storage Service — User-Scoped

Object layout:
    s3://<BUCKET>/<user_id>/<timestamp_ms>-<token>.<ext>

  A user can never reference another user's prefix through
  S3StorageService because the prefix is built server-side from the
  verified JWT subject, never accepted from the client.

Public URLs:
    <public_base>/<bucket>/<key>

  The "<bucket>/" segment is the marker the administrative delete uses to
  recover the object key from a stored URL (see parse_storage_path).

Two service classes:
  S3StorageService      client-scoped credentials, one user's prefix
  AdminStorageService   service-role credentials, any key in the bucket
"""

from __future__ import annotations

import logging
import mimetypes
import re
from dataclasses import dataclass, field

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from docuintel.core.config import settings
from docuintel.core.errors import MalformedUrlError, StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_EXISTS_CODES    = frozenset({"PreconditionFailed", "412", "ConditionalRequestConflict"})


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StoredObject:
    """Returned by put_object."""
    key:          str          # object key inside the bucket
    bucket:       str
    url:          str          # public URL
    size_bytes:   int
    content_type: str
    etag:         str


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

def build_public_url(key: str, bucket: str | None = None) -> str:
    bucket = bucket or settings.s3_bucket
    return f"{settings.public_base_url}/{bucket}/{key}"


def parse_storage_path(file_url: str, bucket: str | None = None) -> str:
    """
    Recover the object key from a public URL by locating the "<bucket>/"
    marker. Everything after the first marker is the key.

    Raises MalformedUrlError if the marker is missing or nothing follows it.
    """
    bucket = bucket or settings.s3_bucket
    marker = f"{bucket}/"
    _, found, key = (file_url or "").partition(marker)
    key = key.split("?", 1)[0].split("#", 1)[0]
    if not found or not key:
        raise MalformedUrlError(
            "Invalid file URL format for this bucket.",
            details={"file_url": file_url, "bucket": bucket},
        )
    return key


def _safe_segment(value: str) -> str:
    """Replace characters that are unsafe in S3 keys."""
    basename = value.replace("\\", "/").rsplit("/", 1)[-1]
    return re.sub(r"[^a-zA-Z0-9._\-]", "_", basename)[:200]


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


# ---------------------------------------------------------------------------
# User storage config
# ---------------------------------------------------------------------------

@dataclass
class UserStorageConfig:
    """Storage settings bound to one authenticated user."""
    user_id: str
    bucket:  str = field(default_factory=lambda: settings.s3_bucket)

    @property
    def user_prefix(self) -> str:
        return f"{_safe_segment(self.user_id)}/"

    def prefix(self, filename: str) -> str:
        """
        Build a user-scoped key.
        Pattern:  <user_id>/<filename>
        """
        return f"{self.user_prefix}{_safe_segment(filename)}"


def _client_kwargs(access_key_id: str, secret_access_key: str) -> dict:
    kwargs: dict = {"region_name": settings.aws_region}
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url
    if access_key_id and secret_access_key:
        kwargs["aws_access_key_id"] = access_key_id
        kwargs["aws_secret_access_key"] = secret_access_key
    return kwargs


# ---------------------------------------------------------------------------
# User-scoped S3 service
# ---------------------------------------------------------------------------

class S3StorageService:
    """
    Async S3 operations scoped to a single user.

    One instance is created per request (via FastAPI dependency) so the
    user config is immutably bound.
    """

    def __init__(self, user_config: UserStorageConfig) -> None:
        self._cfg = user_config
        self._session = aioboto3.Session()

    @property
    def bucket(self) -> str:
        return self._cfg.bucket

    def _client(self):
        """Return a scoped async S3 client context manager."""
        return self._session.client(
            "s3",
            **_client_kwargs(settings.aws_access_key_id, settings.aws_secret_access_key),
        )

    async def put_object(
        self,
        filename: str,
        body: bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> StoredObject:
        """
        Upload an object under the user's prefix without overwriting.

        The put is conditional (If-None-Match: *); if an object already
        exists at the key the write is rejected and StorageError is raised.
        """
        key = self._cfg.prefix(filename)
        ct  = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

        try:
            async with self._client() as s3:
                resp = await s3.put_object(
                    Bucket=self._cfg.bucket,
                    Key=key,
                    Body=body,
                    ContentType=ct,
                    Metadata={"user_id": self._cfg.user_id, **(metadata or {})},
                    IfNoneMatch="*",
                )
        except ClientError as exc:
            if _error_code(exc) in _EXISTS_CODES:
                logger.error("S3 upload collision | user=%s key=%s", self._cfg.user_id, key)
                raise StorageError(
                    "An object already exists at the target storage path.",
                    details={"storage_path": key},
                ) from exc
            logger.error("S3 upload failed | user=%s key=%s error=%s", self._cfg.user_id, key, exc)
            raise StorageError(f"Storage upload failed: {exc}", details={"storage_path": key}) from exc
        except BotoCoreError as exc:
            logger.error("S3 upload failed | user=%s key=%s error=%s", self._cfg.user_id, key, exc)
            raise StorageError(f"Storage upload failed: {exc}", details={"storage_path": key}) from exc

        logger.info(
            "S3 upload ok | user=%s key=%s size=%d",
            self._cfg.user_id, key, len(body),
        )

        return StoredObject(
            key=key,
            bucket=self._cfg.bucket,
            url=self.public_url(key),
            size_bytes=len(body),
            content_type=ct,
            etag=resp.get("ETag", "").strip('"'),
        )

    def public_url(self, key: str) -> str:
        return build_public_url(key, self._cfg.bucket)

    async def delete_object(self, key: str) -> None:
        """
        Remove one of the user's own objects. Used for compensating deletes
        when the record insert fails after a successful upload.
        """
        if not key.startswith(self._cfg.user_prefix):
            raise StorageError(
                "Refusing to delete an object outside the user's prefix.",
                details={"storage_path": key},
            )
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self._cfg.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Storage delete failed: {exc}", details={"storage_path": key}) from exc
        logger.warning("S3 delete | user=%s key=%s", self._cfg.user_id, key)


# ---------------------------------------------------------------------------
# Service-role S3 service
# ---------------------------------------------------------------------------

class AdminStorageService:
    """
    Privileged S3 operations across every user's prefix.
    Built from the service-role key pair; never handed to a regular route.
    """

    def __init__(self, bucket: str | None = None) -> None:
        self._bucket = bucket or settings.s3_bucket
        self._session = aioboto3.Session()

    @property
    def bucket(self) -> str:
        return self._bucket

    def _client(self):
        return self._session.client(
            "s3",
            **_client_kwargs(
                settings.service_role_access_key_id,
                settings.service_role_secret_access_key,
            ),
        )

    async def delete_object(self, key: str) -> bool:
        """
        Delete `key`. Returns False if the object was already absent
        (S3 DeleteObject itself is silent about missing keys, so existence
        is checked first).
        """
        try:
            async with self._client() as s3:
                try:
                    await s3.head_object(Bucket=self._bucket, Key=key)
                except ClientError as exc:
                    if _error_code(exc) in _NOT_FOUND_CODES:
                        return False
                    raise
                await s3.delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 admin delete failed | key=%s error=%s", key, exc)
            raise StorageError(f"Storage Error: {exc}", details={"storage_path": key}) from exc

        logger.warning("S3 admin delete | key=%s", key)
        return True
