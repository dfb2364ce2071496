# tests/helpers.py — v1
"""Fakes and file helpers shared by unit and integration tests."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from photosbackup.core.models import MediaEntry, MediaMetadata
from photosbackup.metadata.base_resolver import BaseMetadataResolver
from photosbackup.storage.base_object_store import BaseObjectStore, ObjectStoreError


# === FAKES ===


class FakeObjectStore(BaseObjectStore):
    """In-memory object store.

    Args:
        fail_times: Number of leading put() calls (per key) that raise.
        fail_keys: put() always raises for keys containing any of these.
        corrupt_keys: get() returns altered bytes for keys containing any of these.
    """

    def __init__(
        self,
        fail_times: int = 0,
        fail_keys: set[str] | None = None,
        corrupt_keys: set[str] | None = None,
    ) -> None:
        self.objects: dict[str, bytes] = {}
        self.storage_classes: dict[str, str | None] = {}
        self.put_calls: list[str] = []
        self.get_calls: list[str] = []
        self._fail_times = fail_times
        self._failures: dict[str, int] = {}
        self._fail_keys = fail_keys or set()
        self._corrupt_keys = corrupt_keys or set()

    @property
    def location(self) -> str:
        return "memory://test"

    async def put(self, key: str, body: Path | bytes, storage_class: str | None = None) -> None:
        self.put_calls.append(key)
        if any(part in key for part in self._fail_keys):
            raise ObjectStoreError(f"injected permanent failure for {key}")
        if self._failures.get(key, 0) < self._fail_times:
            self._failures[key] = self._failures.get(key, 0) + 1
            raise ObjectStoreError(f"injected failure #{self._failures[key]} for {key}")
        data = body if isinstance(body, bytes) else Path(body).read_bytes()
        self.objects[key] = data
        self.storage_classes[key] = storage_class

    async def get(self, key: str) -> bytes:
        self.get_calls.append(key)
        if key not in self.objects:
            raise ObjectStoreError(f"no such key: {key}")
        if any(part in key for part in self._corrupt_keys):
            return self.objects[key] + b"corrupted"
        return self.objects[key]


class FakeResolver(BaseMetadataResolver):
    """Resolver answering from a filename -> capture time map."""

    def __init__(self, captures: dict[str, datetime] | None = None, broken: set[str] | None = None):
        self.captures = captures or {}
        self.broken = broken or set()

    def resolve(self, path: Path) -> MediaMetadata:
        if path.name in self.broken:
            raise RuntimeError(f"cannot decode {path.name}")
        return MediaMetadata(captured_at=self.captures.get(path.name))


# === HELPERS ===


def local(year: int, month: int, day: int = 1, hour: int = 12, minute: int = 0, second: int = 0) -> datetime:
    """Aware local datetime."""
    return datetime(year, month, day, hour, minute, second).astimezone()


def make_media(root: Path, relpath: str, mtime: datetime, content: bytes | None = None) -> Path:
    """Create a file under root with the given modification time."""
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content if content is not None else f"media:{relpath}".encode())
    ts = mtime.timestamp()
    os.utime(path, (ts, ts))
    return path


def make_entry(path: Path, when: datetime, source: str = "mtime") -> MediaEntry:
    return MediaEntry(path=path, resolved_timestamp=when, timestamp_source=source)
