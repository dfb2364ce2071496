# src/pipeline/controller.py — v1
"""Concurrency controller — bounded fan-out of groups with a full barrier.

One task per group; an admission gate (semaphore) lets at most
max_concurrency of them run the pipeline body at once. run_all returns
only after every task reached a terminal state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from photosbackup.core.models import FailureKind, Group, GroupOutcome, GroupState, RunSummary
from photosbackup.pipeline.progress import ProgressReporter
from photosbackup.pipeline.upload_pipeline import GroupUploadPipeline

logger = logging.getLogger(__name__)


class ConcurrencyController:
    """Run the upload pipeline over many groups with bounded parallelism.

    Args:
        pipeline: Per-group pipeline (shares counters and ledger across workers).
        reporter: Progress consumer started for the duration of run_all.
    """

    def __init__(
        self,
        pipeline: GroupUploadPipeline,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._reporter = reporter

    async def run_all(self, groups: Sequence[Group], max_concurrency: int) -> RunSummary:
        """Process every group; return once all are COMPLETED, FAILED or skipped.

        Raises:
            ValueError: If max_concurrency < 1.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

        counters = self._pipeline.counters
        files_total = sum(len(g.members) for g in groups if self._pipeline.is_pending(g))
        counters.set_files_total(files_total)
        gate = asyncio.Semaphore(max_concurrency)

        async def worker(group: Group) -> GroupOutcome:
            async with gate:
                return await self._run_one(group)

        if self._reporter is not None:
            await self._reporter.start(files_total)
        try:
            outcomes = await asyncio.gather(*(worker(g) for g in groups))
        finally:
            if self._reporter is not None:
                await self._reporter.close()

        return self._summarize(list(outcomes))

    async def _run_one(self, group: Group) -> GroupOutcome:
        try:
            return await self._pipeline.process(group)
        except Exception as e:
            self._pipeline.counters.record_other_failure()
            logger.exception("Unexpected error while processing %s", group.key)
            return GroupOutcome(
                group_key=group.key,
                state=GroupState.FAILED,
                states=[GroupState.PENDING, GroupState.FAILED],
                failure=FailureKind.UNEXPECTED,
                error=str(e),
            )

    def _summarize(self, outcomes: list[GroupOutcome]) -> RunSummary:
        snap = self._pipeline.counters.snapshot()
        summary = RunSummary(
            groups_total=len(outcomes),
            completed=sum(1 for o in outcomes if o.state is GroupState.COMPLETED),
            failed=sum(1 for o in outcomes if o.state is GroupState.FAILED),
            skipped=sum(1 for o in outcomes if o.skipped),
            failed_zips=snap.failed_zips,
            failed_uploads=snap.failed_uploads,
            failed_verifications=snap.failed_verifications,
            failed_other=snap.failed_other,
            files_archived=snap.files_archived,
            outcomes=sorted(outcomes, key=lambda o: o.group_key),
        )
        logger.info(
            "Upload round complete: %d groups, %d completed, %d failed, %d skipped",
            summary.groups_total, summary.completed, summary.failed, summary.skipped,
        )
        return summary
