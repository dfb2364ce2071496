# src/batch/scanner.py — v1
"""Change detector — walk the library and find media newer than the watermark.

Workflow:
    1. Walk the tree recursively (unreadable directories are skipped)
    2. Files with a non-allowed extension only bump the exclusion summary
    3. Allowed files get a resolved timestamp: capture time when the
       metadata resolver has one, else the filesystem modification time
    4. Keep entries strictly newer than the watermark
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path

from photosbackup.core.models import ExclusionSummary, MediaEntry, MediaMetadata, ScanResult
from photosbackup.metadata.base_resolver import BaseMetadataResolver

logger = logging.getLogger(__name__)


def normalize_extensions(extensions: Iterable[str]) -> frozenset[str]:
    """Lower-case every extension and make sure it has a leading dot."""
    normalized = set()
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.add(ext if ext.startswith(".") else f".{ext}")
    return frozenset(normalized)


class ChangeDetector:
    """Discover eligible media under a scan root.

    Args:
        resolver: Metadata collaborator. Defaults to the EXIF resolver.
    """

    def __init__(self, resolver: BaseMetadataResolver | None = None) -> None:
        if resolver is None:
            from photosbackup.metadata.exif_resolver import ExifMetadataResolver

            resolver = ExifMetadataResolver()
        self._resolver = resolver

    def scan(
        self,
        scan_root: Path,
        watermark: datetime | None,
        allowed_extensions: Iterable[str],
    ) -> ScanResult:
        """Scan scan_root for media newer than watermark.

        Args:
            scan_root: Library root.
            watermark: Only entries strictly after this instant are eligible.
                None means everything is eligible.
            allowed_extensions: Extensions to consider (case-insensitive).

        Returns:
            ScanResult with eligible entries in walk order and the
            per-extension exclusion summary.

        Raises:
            ValueError: If scan_root is not a directory.
        """
        scan_root = Path(scan_root)
        if not scan_root.is_dir():
            msg = f"Scan root is not a directory: {scan_root}"
            raise ValueError(msg)

        allowed = normalize_extensions(allowed_extensions)
        result = ScanResult(scan_root=str(scan_root))
        excluded = ExclusionSummary()

        for path in self._walk(scan_root):
            ext = path.suffix.lower()
            if ext not in allowed:
                excluded.add(ext)
                continue

            entry = self._resolve_entry(path)
            if entry is None:
                result.unreadable += 1
                continue
            if watermark is not None and entry.resolved_timestamp <= watermark:
                result.older_than_watermark += 1
                continue
            result.eligible.append(entry)

        result.excluded = excluded
        logger.info(
            "Scanned %s: %d eligible, %d older than watermark, %d excluded, %d unreadable",
            scan_root, len(result.eligible), result.older_than_watermark,
            excluded.total, result.unreadable,
        )
        return result

    def _walk(self, scan_root: Path) -> Iterator[Path]:
        """Yield every non-directory entry below scan_root in sorted order."""
        for dirpath, dirnames, filenames in os.walk(scan_root, onerror=_on_walk_error):
            dirnames.sort()
            for name in sorted(filenames):
                yield Path(dirpath) / name

    def _resolve_entry(self, path: Path) -> MediaEntry | None:
        """Resolve the effective timestamp of one allowed file.

        Returns None only when neither a capture time nor a modification
        time can be obtained.
        """
        metadata = self._resolve_metadata(path)

        try:
            stat = path.stat()
        except OSError as e:
            logger.debug("Cannot stat %s: %s", path, e)
            stat = None

        if metadata.captured_at is not None:
            timestamp = metadata.captured_at
            if timestamp.tzinfo is None:
                timestamp = timestamp.astimezone()
            source = "capture"
        elif stat is not None:
            timestamp = datetime.fromtimestamp(stat.st_mtime).astimezone()
            source = "mtime"
        else:
            return None

        return MediaEntry(
            path=path,
            resolved_timestamp=timestamp,
            size_hint=stat.st_size if stat is not None else 0,
            timestamp_source=source,
            camera=metadata.camera,
            latitude=metadata.latitude,
            longitude=metadata.longitude,
        )

    def _resolve_metadata(self, path: Path) -> MediaMetadata:
        try:
            return self._resolver.resolve(path)
        except Exception:
            logger.debug("Metadata resolver failed for %s", path, exc_info=True)
            return MediaMetadata()


def _on_walk_error(error: OSError) -> None:
    logger.debug("Skipping unreadable path %s: %s", error.filename, error)
