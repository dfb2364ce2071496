# src/pipeline/orchestrator.py — v1
"""Backup orchestrator — one incremental run end to end.

Flow:
    1. Read the watermark and scan the library for newer media
    2. Deduplicate, apply the test-mode limit, group by (year, month)
    3. Optionally upload the metadata manifest
    4. Fan groups out to the upload pipeline under the concurrency bound
    5. After the barrier, advance the watermark if the run allows it

The watermark only moves when every group completed (unless
ADVANCE_WATERMARK_ON_FAILURE is set), so failed groups are rescanned
next time while the ledger keeps completed ones from being redone. The
ledger is tied to the watermark it was written under; advancing the
watermark retires it.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from photosbackup.archive.builder import ArchiveBuilder
from photosbackup.batch.dedup import deduplicate, group_by_month
from photosbackup.batch.scanner import ChangeDetector
from photosbackup.config.settings import Settings
from photosbackup.core.models import Group, MediaEntry, PartitionResult, RunSummary, ScanResult
from photosbackup.logging.context import set_run_context
from photosbackup.metadata.base_resolver import BaseMetadataResolver
from photosbackup.pipeline.controller import ConcurrencyController
from photosbackup.pipeline.counters import RunCounters
from photosbackup.pipeline.manifest import upload_manifest
from photosbackup.pipeline.progress import ProgressReporter
from photosbackup.pipeline.retry import RetryPolicy, Sleep
from photosbackup.pipeline.upload_pipeline import GroupUploadPipeline
from photosbackup.storage.base_object_store import BaseObjectStore
from photosbackup.storage.layout import TEST_MODE_KEY_PREFIX, with_test_prefix
from photosbackup.storage.ledger import LedgerState, ProgressLedger, load_ledger
from photosbackup.storage.watermark import read_watermark, write_watermark

logger = logging.getLogger(__name__)

TEST_MODE_PREFIX = "test-"


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = timestamp or datetime.now()
    return f"{ts.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:5]}"


def _now_ceil_second() -> datetime:
    """Local time rounded up to the next whole second."""
    now = datetime.now().astimezone()
    if now.microsecond:
        now = now.replace(microsecond=0) + timedelta(seconds=1)
    return now


@dataclass
class BackupPlan:
    """Everything decided before any archive is built."""

    watermark: datetime | None
    scan: ScanResult
    partition: PartitionResult
    ledger_state: LedgerState
    entries: list[MediaEntry] = field(default_factory=list)

    @property
    def groups(self) -> list[Group]:
        return self.partition.as_groups()

    @property
    def pending_keys(self) -> list[str]:
        return [k for k in self.partition.groups if k not in self.ledger_state.completed_months]

    @property
    def completed_keys(self) -> list[str]:
        return [k for k in self.partition.groups if k in self.ledger_state.completed_months]


class BackupOrchestrator:
    """Run incremental backups for one configured library.

    Args:
        settings: Application settings.
        store: Object store. Created from settings on first use if None.
        resolver: Metadata collaborator for the change detector.
        reporter: Progress consumer. Defaults to log-line rendering.
        clock: Returns the run start time (becomes the new watermark).
        sleep: Awaitable sleep used for upload backoff.
    """

    def __init__(
        self,
        settings: Settings,
        store: BaseObjectStore | None = None,
        resolver: BaseMetadataResolver | None = None,
        reporter: ProgressReporter | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._store = store
        self._detector = ChangeDetector(resolver)
        self._reporter = reporter or ProgressReporter()
        self._clock = clock or _now_ceil_second
        self._sleep = sleep

    def _get_store(self) -> BaseObjectStore:
        if self._store is None:
            from photosbackup.storage.store_factory import create_object_store

            self._store = create_object_store(self._settings)
        return self._store

    def plan(self) -> BackupPlan:
        """Scan and partition without touching the object store."""
        s = self._settings
        watermark = read_watermark(s.last_upload_file)
        logger.info(
            "Watermark: %s", watermark.isoformat() if watermark else "none (full backup)",
        )

        scan = self._detector.scan(
            s.photos_library_path.expanduser(), watermark, s.allowed_extensions_list,
        )
        if scan.excluded.counts:
            logger.info("Excluded file summary:")
            for ext, count in sorted(scan.excluded.counts.items()):
                logger.info("  %s: %d", ext or "(no extension)", count)

        kept, duplicates = deduplicate(scan.eligible)
        if s.test_mode and len(kept) > s.test_mode_limit:
            logger.info("Test mode: limiting run to %d of %d files", s.test_mode_limit, len(kept))
            kept = kept[: s.test_mode_limit]

        return BackupPlan(
            watermark=watermark,
            scan=scan,
            partition=PartitionResult(groups=group_by_month(kept), duplicates=duplicates),
            ledger_state=self._current_ledger(watermark),
            entries=kept,
        )

    def _current_ledger(self, watermark: datetime | None) -> LedgerState:
        """Load the ledger, dropping entries recorded under another watermark."""
        path = self._settings.effective_upload_state_file
        state = load_ledger(path)
        if not state.belongs_to(watermark):
            if state.completed_months:
                logger.info(
                    "Ledger %s predates the current watermark; starting with no completed groups",
                    path,
                )
            state = LedgerState(base_watermark=watermark)
        return state

    async def run(self) -> RunSummary:
        """Execute one backup run and return its summary."""
        s = self._settings
        t0 = time.perf_counter()
        run_started = self._clock()
        set_run_context(generate_run_id(run_started))

        plan = await asyncio.to_thread(self.plan)

        if not plan.entries:
            logger.info("No new media to upload")
            return RunSummary(
                excluded=plan.scan.excluded,
                duplicates=len(plan.partition.duplicates),
                test_mode=s.test_mode,
                duration_seconds=round(time.perf_counter() - t0, 2),
            )

        store = self._get_store()
        if s.metadata_manifest_enabled:
            manifest_key = s.metadata_manifest_key
            if s.test_mode:
                manifest_key = TEST_MODE_KEY_PREFIX + manifest_key
            await upload_manifest(store, manifest_key, plan.entries, s.storage_class)

        ledger = ProgressLedger(s.effective_upload_state_file, plan.ledger_state)
        pipeline = self._build_pipeline(store, ledger)
        controller = ConcurrencyController(pipeline, self._reporter)

        summary = await controller.run_all(plan.groups, s.max_concurrent_uploads)
        summary.eligible_files = len(plan.entries)
        summary.duplicates = len(plan.partition.duplicates)
        summary.excluded = plan.scan.excluded
        summary.test_mode = s.test_mode

        await self._finalize(summary, ledger, run_started)
        summary.duration_seconds = round(time.perf_counter() - t0, 2)

        logger.info(
            "Upload complete. Failed zips: %d, failed uploads: %d, failed verifications: %d",
            summary.failed_zips, summary.failed_uploads, summary.failed_verifications,
        )
        return summary

    def _build_pipeline(self, store: BaseObjectStore, ledger: ProgressLedger) -> GroupUploadPipeline:
        s = self._settings
        prefix = TEST_MODE_PREFIX if s.test_mode else ""
        key_format = with_test_prefix(s.s3_key_format) if s.test_mode else s.s3_key_format
        builder = ArchiveBuilder(
            work_dir=s.archive_work_dir.expanduser(),
            name_prefix=prefix,
            compression=s.archive_compression,
        )
        return GroupUploadPipeline(
            builder=builder,
            store=store,
            ledger=ledger,
            counters=RunCounters(),
            reporter=self._reporter,
            key_format=key_format,
            storage_class=s.storage_class,
            retry_policy=RetryPolicy(
                max_attempts=s.upload_max_attempts,
                backoff_unit_s=s.upload_backoff_unit_s,
            ),
            verify=s.verify_uploads,
            mismatch_policy=s.verify_mismatch_policy,
            sleep=self._sleep,
        )

    async def _finalize(
        self, summary: RunSummary, ledger: ProgressLedger, run_started: datetime,
    ) -> None:
        """Advance the watermark once every group is terminal, if allowed."""
        s = self._settings
        if s.test_mode:
            logger.info("Test mode: watermark left unchanged")
            return
        if summary.has_failures and not s.advance_watermark_on_failure:
            logger.warning(
                "%d group(s) failed; watermark not advanced so they are retried next run",
                summary.failed,
            )
            return

        try:
            await asyncio.to_thread(write_watermark, s.last_upload_file, run_started)
        except OSError:
            logger.error("Could not advance watermark %s", s.last_upload_file, exc_info=True)
            return

        summary.watermark_advanced = True
        summary.new_watermark = run_started
        logger.info("Watermark advanced to %s", run_started.isoformat())

        # Entries are already stale under the new watermark.
        if s.reset_ledger_on_advance:
            try:
                await ledger.reset(read_watermark(s.last_upload_file))
            except OSError:
                logger.warning("Could not reset ledger %s", ledger.path, exc_info=True)
