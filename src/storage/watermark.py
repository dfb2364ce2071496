# src/storage/watermark.py — v1
"""Last-run watermark file: one ISO-8601 timestamp.

A missing or unparsable file means "no watermark" (everything eligible).
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


def read_watermark(path: Path) -> datetime | None:
    """Return the stored watermark, or None if there is none."""
    try:
        raw = Path(path).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not raw:
        return None
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        value = datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("Ignoring unparsable watermark %r in %s", raw, path)
        return None
    # Naive values are taken as local time.
    return value.astimezone()


def format_watermark(when: datetime) -> str:
    """RFC 3339, second precision, local offset."""
    return when.astimezone().isoformat(timespec="seconds")


def write_watermark(path: Path, when: datetime) -> None:
    """Atomically store when as the new watermark.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(format_watermark(when), encoding="utf-8")
    os.replace(tmp_path, path)
