"""Blob storage for property photos and profile pictures.

Two backends share the :class:`BlobStorage` interface:

- ``local``: files under ``settings.storage_local_root``, served by the app at
  ``/media/{key}``. Used in development and tests.
- ``s3``: any S3-compatible bucket (AWS, MinIO) through boto3. boto3 is
  blocking, so calls run in a worker thread.

Keys are namespaced by the caller, e.g. ``properties/{id}/0-front.jpg`` or
``users/{uid}/profile/{ts}-me.jpg``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import lru_cache
from io import BytesIO
from pathlib import Path

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from stayhub.config import settings
from stayhub.exceptions import StorageError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class BlobStorage(ABC):
    """Upload / URL / delete contract used by the services."""

    @abstractmethod
    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Store ``data`` under ``key`` and return the key.

        ``on_progress`` receives integer percentages in ``[0, 100]``.
        Raises :class:`StorageError` on failure.
        """

    @abstractmethod
    def get_url(self, key: str) -> str:
        """Public URL for a stored key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a stored key. Missing keys are not an error."""


class LocalBlobStorage(BlobStorage):
    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Invalid storage key: {key!r}")
        return path

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        path = self._path_for(key)
        if on_progress:
            on_progress(0)
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as exc:
            logger.error("Local upload failed for %s: %s", key, exc)
            raise StorageError(f"Could not store {key}") from exc
        if on_progress:
            on_progress(100)
        logger.info("Stored %s (%d bytes, %s)", key, len(data), content_type)
        return key

    def get_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as exc:
            logger.error("Local delete failed for %s: %s", key, exc)
            raise StorageError(f"Could not delete {key}") from exc


class S3BlobStorage(BlobStorage):
    def __init__(self) -> None:
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url or None,  # e.g. http://minio:9000
            aws_access_key_id=settings.s3_access_key or None,
            aws_secret_access_key=settings.s3_secret_key or None,
            region_name=settings.s3_region,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        self.bucket_name = settings.s3_bucket_name
        self.public_base = settings.storage_public_base_url.rstrip("/")

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        total = len(data) or 1
        sent = 0

        def _callback(chunk: int) -> None:
            nonlocal sent
            sent += chunk
            if on_progress:
                on_progress(min(100, round(sent * 100 / total)))

        try:
            await asyncio.to_thread(
                self.s3_client.upload_fileobj,
                BytesIO(data),
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type, "CacheControl": "max-age=31536000"},
                Callback=_callback,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload failed for %s: %s", key, exc)
            raise StorageError(f"Could not store {key}") from exc
        logger.info("Uploaded %s to bucket %s", key, self.bucket_name)
        return key

    def get_url(self, key: str) -> str:
        if self.public_base:
            return f"{self.public_base}/{key.lstrip('/')}"
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=3600,
        )

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 delete failed for %s: %s", key, exc)
            raise StorageError(f"Could not delete {key}") from exc


async def delete_blobs(storage: BlobStorage, keys: list[str]) -> None:
    """Best-effort removal of ``keys``; failures are logged, not raised."""
    for key in keys:
        try:
            await storage.delete(key)
        except StorageError:
            logger.exception("Failed to delete blob %s", key)


@lru_cache
def get_storage() -> BlobStorage:
    """FastAPI dependency returning the configured storage backend."""
    if settings.storage_backend == "s3":
        return S3BlobStorage()
    return LocalBlobStorage(settings.storage_local_root, settings.storage_public_base_url)
