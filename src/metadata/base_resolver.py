# src/metadata/base_resolver.py — v1
"""Abstract metadata resolver interface.

A resolver turns a file path into capture time, camera model and GPS
position. Implementations never raise for unreadable or untagged files:
they return an empty MediaMetadata and let the caller fall back to the
filesystem modification time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from photosbackup.core.models import MediaMetadata


class BaseMetadataResolver(ABC):
    """Unified interface for media metadata extraction."""

    @abstractmethod
    def resolve(self, path: Path) -> MediaMetadata:
        """Return whatever metadata could be read from path."""
