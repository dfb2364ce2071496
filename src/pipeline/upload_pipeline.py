# src/pipeline/upload_pipeline.py — v1
"""Per-group upload pipeline: build → upload → verify → record.

State machine for one group:

    PENDING → BUILDING → BUILT → UPLOADING → UPLOADED → [VERIFYING] → COMPLETED

FAILED is reachable from BUILDING (archive error), UPLOADING (retries
exhausted) and, only with the "fail" mismatch policy, VERIFYING. Groups
already in the ledger never leave PENDING.

On failure the local archive is kept for inspection; on completion the
ledger is flushed first and the archive is deleted afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Literal

from photosbackup.archive.builder import ArchiveBuilder, ArchiveWriteError
from photosbackup.core.checksum import bytes_sha256, file_sha256
from photosbackup.core.models import (
    ArchiveUnit,
    FailureKind,
    Group,
    GroupOutcome,
    GroupState,
    MediaEntry,
    UploadRecord,
)
from photosbackup.logging.context import set_group_context, set_stage
from photosbackup.pipeline.counters import RunCounters
from photosbackup.pipeline.progress import ProgressEvent, ProgressKind, ProgressReporter
from photosbackup.pipeline.retry import RetryPolicy, Sleep, UploadRetryExhausted, with_retry
from photosbackup.storage.base_object_store import BaseObjectStore, ObjectStoreError
from photosbackup.storage.layout import DEFAULT_KEY_FORMAT, remote_key
from photosbackup.storage.ledger import ProgressLedger

logger = logging.getLogger(__name__)

# Objects in these tiers cannot be read back right after upload.
COLD_STORAGE_CLASSES: frozenset[str] = frozenset({"GLACIER", "DEEP_ARCHIVE"})

MismatchPolicy = Literal["warn", "fail"]


class ChecksumMismatchError(Exception):
    """The uploaded object could not be confirmed identical to the local archive."""

    def __init__(self, key: str, local_hash: str, remote_hash: str | None) -> None:
        self.key = key
        self.local_hash = local_hash
        self.remote_hash = remote_hash
        detail = f"remote={remote_hash}" if remote_hash else "remote object unreadable"
        super().__init__(f"Checksum mismatch for {key}: local={local_hash} {detail}")


def verification_applies(storage_class: str | None, verify: bool = True) -> bool:
    """True when uploads to storage_class should be checksum-verified."""
    if not verify:
        return False
    return (storage_class or "").upper() not in COLD_STORAGE_CLASSES


class GroupUploadPipeline:
    """Run one group through the upload state machine.

    Args:
        builder: Archive builder writing into the work directory.
        store: Object store receiving archives.
        ledger: Progress ledger (consulted for skips, appended on completion).
        counters: Shared run counters.
        reporter: Optional progress event sink.
        key_format: Remote key template (see storage.layout).
        storage_class: Storage class hint passed to the store.
        retry_policy: Upload attempts and backoff.
        verify: Master switch for checksum verification.
        mismatch_policy: "warn" logs a mismatch and completes anyway;
            "fail" marks the group FAILED.
        sleep: Awaitable sleep used between retries.
    """

    def __init__(
        self,
        builder: ArchiveBuilder,
        store: BaseObjectStore,
        ledger: ProgressLedger,
        counters: RunCounters,
        reporter: ProgressReporter | None = None,
        key_format: str = DEFAULT_KEY_FORMAT,
        storage_class: str | None = None,
        retry_policy: RetryPolicy | None = None,
        verify: bool = True,
        mismatch_policy: MismatchPolicy = "warn",
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._builder = builder
        self._store = store
        self._ledger = ledger
        self._counters = counters
        self._reporter = reporter
        self._key_format = key_format
        self._storage_class = storage_class or None
        self._retry_policy = retry_policy or RetryPolicy()
        self._verify = verification_applies(storage_class, verify)
        self._mismatch_policy = mismatch_policy
        self._sleep = sleep

    @property
    def ledger(self) -> ProgressLedger:
        return self._ledger

    @property
    def counters(self) -> RunCounters:
        return self._counters

    def is_pending(self, group: Group) -> bool:
        """False when the ledger says this group is already done."""
        return not self._ledger.is_completed(group.key)

    async def process(self, group: Group) -> GroupOutcome:
        """Drive group to COMPLETED or FAILED (or leave it PENDING if done before)."""
        set_group_context(group.key)
        outcome = GroupOutcome(group_key=group.key, state=GroupState.PENDING, states=[GroupState.PENDING])

        if not self.is_pending(group):
            logger.info("Skipping %s: already uploaded in an earlier run", group.key)
            outcome.skipped = True
            self._publish(ProgressKind.GROUP_SKIPPED, group.key)
            return outcome

        self._publish(ProgressKind.GROUP_STARTED, group.key, detail=f"{len(group.members)} files")

        # --- build ---
        self._transition(outcome, GroupState.BUILDING)
        try:
            unit = await asyncio.to_thread(
                self._builder.build, group.key, group.members, self._on_member_archived(group.key),
            )
        except ArchiveWriteError as e:
            self._counters.record_zip_failure()
            logger.error("Archive failed for %s: %s", group.key, e)
            return self._fail(outcome, FailureKind.ARCHIVE_WRITE_FAILED, e)
        outcome.archive_name = unit.generated_name
        self._transition(outcome, GroupState.BUILT)
        self._publish(ProgressKind.ARCHIVE_BUILT, group.key, detail=unit.generated_name)

        # --- upload ---
        key = remote_key(self._key_format, group.key, unit.generated_name)
        outcome.remote_key = key
        self._transition(outcome, GroupState.UPLOADING)
        self._publish(ProgressKind.UPLOAD_STARTED, group.key, detail=f"{self._store.location}/{key}")
        try:
            await with_retry(
                self._store.put, key, unit.local_path, self._storage_class,
                policy=self._retry_policy,
                label=f"upload {unit.generated_name}",
                sleep=self._sleep,
                on_retry=lambda attempt, err: self._publish(
                    ProgressKind.UPLOAD_RETRY, group.key, detail=f"attempt {attempt}: {err}",
                ),
            )
        except UploadRetryExhausted as e:
            self._counters.record_upload_failure()
            logger.error(
                "Upload failed for %s after %d attempts, keeping %s: %s",
                group.key, e.attempts, unit.local_path, e.last_error,
            )
            return self._fail(outcome, FailureKind.UPLOAD_FAILED, e)
        self._transition(outcome, GroupState.UPLOADED)
        self._publish(ProgressKind.UPLOADED, group.key, detail=key)

        # --- verify ---
        if self._verify:
            self._transition(outcome, GroupState.VERIFYING)
            try:
                await self._verify_upload(unit, key)
            except ChecksumMismatchError as e:
                outcome.verified = False
                logger.error("%s", e)
                if self._mismatch_policy == "fail":
                    self._counters.record_verification_failure()
                    return self._fail(outcome, FailureKind.VERIFICATION_FAILED, e)
            else:
                outcome.verified = True
                self._publish(ProgressKind.VERIFIED, group.key, detail=key)

        # --- complete ---
        record = UploadRecord(
            group_key=group.key,
            remote_key=key,
            archive_name=unit.generated_name,
            completed_at=datetime.now(timezone.utc),
        )
        await self._ledger.record(record)
        _remove_archive(unit)
        self._transition(outcome, GroupState.COMPLETED)
        self._publish(ProgressKind.COMPLETED, group.key, detail=unit.generated_name)
        return outcome

    async def _verify_upload(self, unit: ArchiveUnit, key: str) -> None:
        """Compare the local archive hash with the uploaded object's hash.

        Raises:
            ChecksumMismatchError: If the hashes differ or the object cannot be fetched.
        """
        local_hash = await asyncio.to_thread(file_sha256, unit.local_path)
        try:
            remote_bytes = await self._store.get(key)
        except ObjectStoreError as e:
            logger.warning("Could not fetch %s for verification: %s", key, e)
            raise ChecksumMismatchError(key, local_hash, None) from e
        remote_hash = bytes_sha256(remote_bytes)
        if remote_hash != local_hash:
            raise ChecksumMismatchError(key, local_hash, remote_hash)
        logger.info("Checksum verified for %s (sha256=%s)", key, local_hash)

    def _on_member_archived(self, group_key: str):
        def _advance(member: MediaEntry) -> None:
            done, total = self._counters.advance_files()
            self._publish(
                ProgressKind.FILE_ARCHIVED, group_key,
                files_done=done, files_total=total, detail=member.base_name,
            )

        return _advance

    def _transition(self, outcome: GroupOutcome, state: GroupState) -> None:
        logger.info("%s: %s -> %s", outcome.group_key, outcome.state.value, state.value)
        outcome.state = state
        outcome.states.append(state)
        set_stage(state.value)

    def _fail(
        self, outcome: GroupOutcome, kind: FailureKind, error: Exception | str,
    ) -> GroupOutcome:
        self._transition(outcome, GroupState.FAILED)
        outcome.failure = kind
        outcome.error = str(error)
        self._publish(ProgressKind.FAILED, outcome.group_key, detail=f"{kind.value}: {error}")
        return outcome

    def _publish(
        self,
        kind: ProgressKind,
        group_key: str,
        files_done: int = 0,
        files_total: int = 0,
        detail: str = "",
    ) -> None:
        if self._reporter is None:
            return
        self._reporter.publish(ProgressEvent(
            kind=kind, group_key=group_key,
            files_done=files_done, files_total=files_total, detail=detail,
        ))


def _remove_archive(unit: ArchiveUnit) -> None:
    try:
        unit.local_path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not delete local archive %s", unit.local_path, exc_info=True)
