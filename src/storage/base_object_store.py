# src/storage/base_object_store.py — v1
"""Abstract object store interface for archive uploads."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class ObjectStoreError(Exception):
    """A put or get against the object store failed.

    Transient and permanent failures are not distinguished; callers
    apply one retry policy to all of them.
    """


class BaseObjectStore(ABC):
    """Unified interface for remote archive storage backends."""

    @abstractmethod
    async def put(
        self,
        key: str,
        body: Path | bytes,
        storage_class: str | None = None,
    ) -> None:
        """Upload a local file or an in-memory payload under key."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Fetch the full content stored under key."""

    @property
    def location(self) -> str:
        """Human-readable description of where objects go."""
        return type(self).__name__
