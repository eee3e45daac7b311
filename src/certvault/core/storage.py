"""
Object Storage

Binary storage for certificate files. Two backends are available:

- ``local``: files under ``settings.storage_local_root`` (development, tests)
- ``s3``: an S3 bucket or a MinIO endpoint via boto3

Blocking I/O runs in a worker thread so the event loop is never blocked.
Storage keys are opaque strings such as
``certificates/<school_id>/<student_id>/<uuid>.pdf``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from certvault.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage backend fails."""


class ObjectNotFoundError(StorageError):
    """Raised when a key does not exist in storage."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Object not found: {key}")


class ObjectStorage(Protocol):
    """Protocol implemented by every storage backend."""

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None: ...

    async def get(self, key: str) -> bytes: ...

    async def exists(self, key: str) -> bool: ...


class LocalObjectStorage:
    """Stores objects as files below a root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.debug(f"Stored {len(data)} bytes at {key}")

    async def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise ObjectNotFoundError(key) from e
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path_for(key).is_file)


class S3ObjectStorage:
    """Stores objects in an S3 bucket (or MinIO when an endpoint is set)."""

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
    ):
        self.bucket = bucket
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region_name,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                **extra,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e
        logger.debug(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")

    async def get(self, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=key
            )
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise ObjectNotFoundError(key) from e
            raise StorageError(f"Failed to download {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to download {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return False
            raise StorageError(f"Failed to check {key}: {e}") from e


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    """
    Return the configured storage backend.

    The instance is created on first use and reused afterwards.
    Usable as a FastAPI dependency.
    """
    global _storage
    if _storage is None:
        backend = settings.storage_backend.lower()
        if backend == "s3":
            _storage = S3ObjectStorage(
                settings.storage_bucket,
                endpoint_url=settings.storage_endpoint_url,
                region_name=settings.aws_region,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
            )
        elif backend == "local":
            _storage = LocalObjectStorage(settings.storage_local_root)
        else:
            raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
        logger.info(f"Object storage initialized: {backend}")
    return _storage


__all__ = [
    "ObjectStorage",
    "LocalObjectStorage",
    "S3ObjectStorage",
    "StorageError",
    "ObjectNotFoundError",
    "get_storage",
]
