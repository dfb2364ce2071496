# src/storage/ledger.py — v1
"""Progress ledger — durable record of completed groups.

The ledger is a small JSON file:

    {
      "completed_months": {"2024-03": "2024-03_20240405T101112.zip"},
      "remote_keys": {"2024-03": "2024/2024-03_20240405T101112.zip"},
      "base_watermark": "2024-01-01T00:00:00+01:00",
      "updated_at": "..."
    }

A missing file is an empty ledger. Deleting it forces every group back
to pending. Entries only count for the watermark they were recorded
under (base_watermark): once the watermark moves on, the next run
starts from an empty ledger. Each completion is flushed synchronously,
under one lock, before the next completion can be recorded.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from photosbackup.core.models import UploadRecord

logger = logging.getLogger(__name__)


class LedgerState(BaseModel):
    """In-memory form of the ledger file."""

    completed_months: dict[str, str] = Field(default_factory=dict)
    remote_keys: dict[str, str] = Field(default_factory=dict)
    base_watermark: datetime | None = None
    updated_at: datetime | None = None

    def belongs_to(self, watermark: datetime | None) -> bool:
        """True if these entries were recorded under watermark."""
        return self.base_watermark == watermark


def load_ledger(path: Path) -> LedgerState:
    """Load the ledger at path.

    Missing, unreadable or unparsable files yield an empty state; the
    last two are logged since completed groups will be uploaded again.
    """
    path = Path(path)
    if not path.exists():
        return LedgerState()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot read ledger %s: %s", path, e)
        return LedgerState()
    try:
        return LedgerState(**json.loads(text))
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        logger.warning("Ignoring unreadable ledger %s: %s", path, e)
        return LedgerState()


def save_ledger(path: Path, state: LedgerState) -> None:
    """Atomically replace the ledger file with state.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


class ProgressLedger:
    """Concurrency-safe wrapper around a LedgerState and its file.

    Args:
        path: Ledger file location.
        state: Initial state (defaults to empty).
    """

    def __init__(self, path: Path, state: LedgerState | None = None) -> None:
        self._path = Path(path)
        self._state = state or LedgerState()
        self._lock = asyncio.Lock()

    @classmethod
    def load(cls, path: Path) -> ProgressLedger:
        return cls(path, load_ledger(path))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def completed(self) -> dict[str, str]:
        """Snapshot of group key -> archive name."""
        return dict(self._state.completed_months)

    def is_completed(self, group_key: str) -> bool:
        return group_key in self._state.completed_months

    async def record(self, record: UploadRecord) -> bool:
        """Add record and flush the ledger to disk.

        A group key is recorded at most once; a second record for the
        same key is ignored.

        Returns:
            True if the record was added and flushed, False if it was a
            duplicate or the flush failed.
        """
        async with self._lock:
            if record.group_key in self._state.completed_months:
                logger.warning("Group %s already in ledger, not recording again", record.group_key)
                return False
            self._state.completed_months[record.group_key] = record.archive_name
            self._state.remote_keys[record.group_key] = record.remote_key
            self._state.updated_at = datetime.now(timezone.utc)
            snapshot = self._state.model_copy(deep=True)
            try:
                await asyncio.to_thread(save_ledger, self._path, snapshot)
            except OSError:
                logger.error(
                    "Could not save ledger %s; %s will be uploaded again next run",
                    self._path, record.group_key, exc_info=True,
                )
                return False
        logger.debug("Ledger updated: %s -> %s", record.group_key, record.archive_name)
        return True

    async def reset(self, base_watermark: datetime | None = None) -> None:
        """Forget all completed groups and flush the empty ledger.

        Raises:
            OSError: If the file cannot be written.
        """
        async with self._lock:
            self._state = LedgerState(
                base_watermark=base_watermark, updated_at=datetime.now(timezone.utc),
            )
            await asyncio.to_thread(save_ledger, self._path, self._state)
        logger.info("Ledger %s reset", self._path)
