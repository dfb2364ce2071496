# src/storage/store_factory.py — v1
"""Factory: instantiate the object store from configuration."""

from __future__ import annotations

from photosbackup.config.settings import Settings
from photosbackup.storage.base_object_store import BaseObjectStore
from photosbackup.storage.local_store import LocalObjectStore


def create_object_store(settings: Settings) -> BaseObjectStore:
    """Create the object store selected by OBJECT_STORE.

    Args:
        settings: Application settings.

    Returns:
        BaseObjectStore instance.

    Raises:
        ValueError: If the store type is not supported or is misconfigured.
    """
    if settings.object_store == "local":
        return LocalObjectStore(root=settings.local_store_root)

    if settings.object_store == "s3":
        from photosbackup.storage.s3_store import S3ObjectStore

        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET must be set when OBJECT_STORE=s3")
        return S3ObjectStore(
            bucket=settings.s3_bucket,
            region=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint_url or None,
            connect_timeout_s=settings.s3_connect_timeout_s,
            read_timeout_s=settings.s3_read_timeout_s,
        )

    raise ValueError(f"Unsupported object store: {settings.object_store!r}")
