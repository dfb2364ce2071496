# src/archive/builder.py — v1
"""Archive builder — pack one group's media into a single zip file.

Members are stored flat under their base filename. The archive is written
to "<name>.part" and renamed into place only once it is complete, so a
failed build never leaves something that looks like a finished archive.
"""

from __future__ import annotations

import logging
import os
import zipfile
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

from photosbackup.core.models import ArchiveUnit, MediaEntry

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".zip"
ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"
PARTIAL_SUFFIX = ".part"

COMPRESSION_METHODS: dict[str, int] = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}


class ArchiveWriteError(Exception):
    """Building the archive for a group failed."""

    def __init__(self, group_key: str, archive_name: str, cause: Exception) -> None:
        self.group_key = group_key
        self.archive_name = archive_name
        self.cause = cause
        super().__init__(f"Failed to write archive {archive_name} for {group_key}: {cause}")


def generate_archive_name(
    group_key: str,
    timestamp: datetime | None = None,
    prefix: str = "",
) -> str:
    """Return "{prefix}{group_key}_{YYYYMMDDTHHMMSS}.zip"."""
    ts = timestamp or datetime.now()
    return f"{prefix}{group_key}_{ts.strftime(ARCHIVE_TIMESTAMP_FORMAT)}{ARCHIVE_EXTENSION}"


class ArchiveBuilder:
    """Write group archives into a work directory.

    Args:
        work_dir: Directory receiving finished archives.
        name_prefix: Prepended to every generated name (e.g. "test-").
        compression: "stored" or "deflated".
        clock: Returns the timestamp embedded in archive names.
    """

    def __init__(
        self,
        work_dir: Path,
        name_prefix: str = "",
        compression: str = "deflated",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if compression not in COMPRESSION_METHODS:
            raise ValueError(f"Unsupported archive compression: {compression!r}")
        self._work_dir = Path(work_dir)
        self._prefix = name_prefix
        self._compression = COMPRESSION_METHODS[compression]
        self._clock = clock or datetime.now

    def build(
        self,
        group_key: str,
        members: Sequence[MediaEntry],
        on_member: Callable[[MediaEntry], None] | None = None,
    ) -> ArchiveUnit:
        """Pack members into a new archive.

        Args:
            group_key: "YYYY-MM" key of the group.
            members: Entries to store, in order.
            on_member: Called after each member has been written.

        Returns:
            ArchiveUnit describing the finished file.

        Raises:
            ArchiveWriteError: On any I/O failure. The partial file is removed.
        """
        name = generate_archive_name(group_key, self._clock(), self._prefix)
        final_path = self._work_dir / name
        partial_path = final_path.with_name(final_path.name + PARTIAL_SUFFIX)

        try:
            self._work_dir.mkdir(parents=True, exist_ok=True)
            used_names: set[str] = set()
            with zipfile.ZipFile(partial_path, "w", compression=self._compression) as zf:
                for member in members:
                    arcname = _unique_arcname(member.base_name, used_names)
                    if arcname != member.base_name:
                        logger.warning(
                            "Name clash in %s: storing %s as %s", name, member.path, arcname,
                        )
                    zf.write(member.path, arcname=arcname)
                    if on_member is not None:
                        on_member(member)
            os.replace(partial_path, final_path)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            _discard(partial_path)
            raise ArchiveWriteError(group_key, name, e) from e

        size = final_path.stat().st_size
        logger.info("Built %s: %d files, %d bytes", name, len(members), size)
        return ArchiveUnit(
            group_key=group_key,
            generated_name=name,
            local_path=final_path,
            member_count=len(members),
            size_bytes=size,
        )


def _unique_arcname(base_name: str, used: set[str]) -> str:
    """Return base_name, or "stem_N.ext" if it was already used."""
    candidate = base_name
    if candidate in used:
        stem, dot, ext = base_name.rpartition(".")
        if not dot:
            stem, ext = base_name, ""
        n = 1
        while candidate in used:
            candidate = f"{stem}_{n}.{ext}" if dot else f"{stem}_{n}"
            n += 1
    used.add(candidate)
    return candidate


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove partial archive %s", path, exc_info=True)
