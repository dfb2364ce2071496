# src/storage/s3_store.py — v1
"""S3-compatible object store (OBJECT_STORE=s3).

Supports AWS S3, MinIO, and other S3-compatible storage.
Requires 'boto3' package: pip install boto3.
Blocking boto3 calls run in a worker thread so concurrent uploads
do not stall the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from photosbackup.storage.base_object_store import BaseObjectStore, ObjectStoreError

logger = logging.getLogger(__name__)


class S3ObjectStore(BaseObjectStore):
    """Upload archives to an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        connect_timeout_s: float = 60.0,
        read_timeout_s: float = 300.0,
    ) -> None:
        """Initialize S3 store.

        Args:
            bucket: S3 bucket name.
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
            connect_timeout_s: Socket connect timeout per request.
            read_timeout_s: Socket read timeout per request.
        """
        try:
            import boto3
            from botocore.config import Config
            from botocore.exceptions import BotoCoreError, ClientError
        except ImportError as e:
            raise ImportError(
                "boto3 package required for S3 object store: pip install boto3"
            ) from e

        kwargs: dict = {
            "config": Config(
                connect_timeout=connect_timeout_s,
                read_timeout=read_timeout_s,
                retries={"max_attempts": 1},
            ),
        }
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._errors: tuple[type[Exception], ...] = (BotoCoreError, ClientError)

    @property
    def location(self) -> str:
        return f"s3://{self._bucket}"

    async def put(
        self,
        key: str,
        body: Path | bytes,
        storage_class: str | None = None,
    ) -> None:
        """Upload a file or payload to s3://bucket/key."""
        await asyncio.to_thread(self._put_sync, key, body, storage_class)

    async def get(self, key: str) -> bytes:
        """Download s3://bucket/key into memory."""
        return await asyncio.to_thread(self._get_sync, key)

    def _put_sync(self, key: str, body: Path | bytes, storage_class: str | None) -> None:
        extra: dict = {}
        if storage_class:
            extra["StorageClass"] = storage_class
        try:
            if isinstance(body, bytes):
                self._s3.put_object(Bucket=self._bucket, Key=key, Body=body, **extra)
                size = len(body)
            else:
                with Path(body).open("rb") as fh:
                    self._s3.put_object(Bucket=self._bucket, Key=key, Body=fh, **extra)
                size = Path(body).stat().st_size
        except self._errors as e:
            raise ObjectStoreError(f"put s3://{self._bucket}/{key} failed: {e}") from e
        except OSError as e:
            raise ObjectStoreError(f"cannot read upload source for {key}: {e}") from e
        logger.debug("S3 put: s3://%s/%s (%d bytes)", self._bucket, key, size)

    def _get_sync(self, key: str) -> bytes:
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except self._errors as e:
            raise ObjectStoreError(f"get s3://{self._bucket}/{key} failed: {e}") from e
