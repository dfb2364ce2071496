# src/storage/local_store.py — v1
"""Local directory object store (OBJECT_STORE=local).

Treats a directory as a bucket: keys become relative paths. Useful for
backing up to a mounted NAS or external drive.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from photosbackup.storage.base_object_store import BaseObjectStore, ObjectStoreError


class LocalObjectStore(BaseObjectStore):
    """Store objects as files under a root directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    @property
    def location(self) -> str:
        return str(self._root)

    def _resolve(self, key: str) -> Path:
        """Map a key to a path, refusing keys that escape the root."""
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise ObjectStoreError(f"Key escapes store root: {key!r}")
        return path

    async def put(
        self,
        key: str,
        body: Path | bytes,
        storage_class: str | None = None,
    ) -> None:
        """Copy a file (or write a payload) to root/key. storage_class is ignored."""
        target = self._resolve(key)
        try:
            await asyncio.to_thread(_write, target, body)
        except OSError as e:
            raise ObjectStoreError(f"put {key} failed: {e}") from e

    async def get(self, key: str) -> bytes:
        """Read root/key."""
        try:
            return await asyncio.to_thread(self._resolve(key).read_bytes)
        except OSError as e:
            raise ObjectStoreError(f"get {key} failed: {e}") from e


def _write(target: Path, body: Path | bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(body, bytes):
        target.write_bytes(body)
    else:
        shutil.copyfile(body, target)
