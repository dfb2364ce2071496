# src/pipeline/manifest.py — v1
"""Metadata manifest — a JSON listing of everything picked up by a run.

One record per eligible file: path, resolved timestamp, where the
timestamp came from, camera and GPS position. Uploaded next to the
archives when METADATA_MANIFEST_ENABLED is set.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from photosbackup.core.models import MediaEntry
from photosbackup.storage.base_object_store import BaseObjectStore, ObjectStoreError

logger = logging.getLogger(__name__)


def build_manifest(entries: Iterable[MediaEntry]) -> list[dict[str, Any]]:
    return [
        {
            "path": str(e.path),
            "taken": e.resolved_timestamp.isoformat(timespec="seconds"),
            "source": e.timestamp_source,
            "camera": e.camera,
            "latitude": e.latitude,
            "longitude": e.longitude,
        }
        for e in entries
    ]


async def upload_manifest(
    store: BaseObjectStore,
    key: str,
    entries: Iterable[MediaEntry],
    storage_class: str | None = None,
) -> bool:
    """Serialize and upload the manifest. Failures are logged, not raised."""
    records = build_manifest(entries)
    payload = json.dumps(records, indent=2).encode("utf-8")
    try:
        await store.put(key, payload, storage_class)
    except ObjectStoreError as e:
        logger.error("Failed to upload metadata manifest %s: %s", key, e)
        return False
    logger.info("Uploaded metadata manifest %s (%d entries)", key, len(records))
    return True
