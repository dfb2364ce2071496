# src/pipeline/counters.py — v1
"""Run-wide counters shared by all group workers.

Failure counters and the file-progress counter sit behind two separate
locks. Archive building runs in worker threads, so these are
threading locks rather than asyncio ones; no lock is held across an await.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class CounterSnapshot:
    failed_zips: int = 0
    failed_uploads: int = 0
    failed_verifications: int = 0
    failed_other: int = 0
    files_archived: int = 0
    files_total: int = 0


class RunCounters:
    """Owned, lock-guarded counters for one run."""

    def __init__(self, files_total: int = 0) -> None:
        self._failure_lock = threading.Lock()
        self._progress_lock = threading.Lock()
        self._failed_zips = 0
        self._failed_uploads = 0
        self._failed_verifications = 0
        self._failed_other = 0
        self._files_archived = 0
        self._files_total = files_total

    # --- failures ---

    def record_zip_failure(self) -> None:
        with self._failure_lock:
            self._failed_zips += 1

    def record_upload_failure(self) -> None:
        with self._failure_lock:
            self._failed_uploads += 1

    def record_verification_failure(self) -> None:
        with self._failure_lock:
            self._failed_verifications += 1

    def record_other_failure(self) -> None:
        with self._failure_lock:
            self._failed_other += 1

    # --- progress ---

    def set_files_total(self, total: int) -> None:
        with self._progress_lock:
            self._files_total = total

    def advance_files(self, count: int = 1) -> tuple[int, int]:
        """Add count archived files; return (done, total)."""
        with self._progress_lock:
            self._files_archived += count
            return self._files_archived, self._files_total

    def snapshot(self) -> CounterSnapshot:
        with self._failure_lock, self._progress_lock:
            return CounterSnapshot(
                failed_zips=self._failed_zips,
                failed_uploads=self._failed_uploads,
                failed_verifications=self._failed_verifications,
                failed_other=self._failed_other,
                files_archived=self._files_archived,
                files_total=self._files_total,
            )
