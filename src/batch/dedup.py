# src/batch/dedup.py — v1
"""Deduplicator and grouper — identity keys and (year, month) partitions.

Two entries are the same photo when their resolved timestamps agree to
the second and their base filenames are equal. The first occurrence in
scan order wins; later ones are dropped with a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from photosbackup.core.models import MediaEntry, PartitionResult

logger = logging.getLogger(__name__)

IDENTITY_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"


def identity_key(entry: MediaEntry) -> tuple[str, str]:
    """Return (timestamp to the second, base filename)."""
    return entry.resolved_timestamp.strftime(IDENTITY_TIMESTAMP_FORMAT), entry.base_name


def group_key_for(timestamp: datetime) -> str:
    """Return the "YYYY-MM" group key for a timestamp."""
    return f"{timestamp.year:04d}-{timestamp.month:02d}"


def deduplicate(entries: Iterable[MediaEntry]) -> tuple[list[MediaEntry], list[MediaEntry]]:
    """Split entries into (kept, duplicates), preserving scan order."""
    seen: dict[tuple[str, str], MediaEntry] = {}
    kept: list[MediaEntry] = []
    duplicates: list[MediaEntry] = []

    for entry in entries:
        key = identity_key(entry)
        first = seen.get(key)
        if first is not None:
            logger.warning("Duplicate media skipped: %s (same as %s)", entry.path, first.path)
            duplicates.append(entry)
            continue
        seen[key] = entry
        kept.append(entry)

    return kept, duplicates


def group_by_month(entries: Iterable[MediaEntry]) -> dict[str, list[MediaEntry]]:
    """Partition entries by resolved (year, month), sorted by group key.

    Member order inside a group follows input order.
    """
    groups: dict[str, list[MediaEntry]] = {}
    for entry in entries:
        groups.setdefault(group_key_for(entry.resolved_timestamp), []).append(entry)
    return dict(sorted(groups.items()))


def split_groups(eligible: Iterable[MediaEntry]) -> PartitionResult:
    """Deduplicate then group, keeping the dropped duplicates for reporting."""
    kept, duplicates = deduplicate(eligible)
    groups = group_by_month(kept)
    logger.info(
        "Partitioned %d entries into %d groups (%d duplicates dropped)",
        len(kept), len(groups), len(duplicates),
    )
    return PartitionResult(groups=groups, duplicates=duplicates)


def partition(eligible: Iterable[MediaEntry]) -> dict[str, list[MediaEntry]]:
    """Deduplicate and group eligible entries by "YYYY-MM"."""
    return split_groups(eligible).groups
