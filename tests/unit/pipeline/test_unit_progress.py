# tests/unit/pipeline/test_unit_progress.py — v1
"""Tests for pipeline/progress.py — the event consumer and its file bar."""

from __future__ import annotations

import asyncio
import io
import logging

import pytest

from photosbackup.pipeline.progress import (
    ProgressEvent,
    ProgressKind,
    ProgressReporter,
)


class TestProgressReporter:
    @pytest.mark.asyncio
    async def test_events_rendered_in_order(self):
        seen: list[ProgressEvent] = []
        reporter = ProgressReporter(render=seen.append)
        await reporter.start()
        for i in range(5):
            reporter.publish(ProgressEvent(ProgressKind.FILE_ARCHIVED, "2024-03", i + 1, 5))
        await reporter.close()
        assert [e.files_done for e in seen] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_publish_from_worker_thread(self):
        seen: list[ProgressEvent] = []
        reporter = ProgressReporter(render=seen.append)
        await reporter.start()
        await asyncio.to_thread(
            reporter.publish, ProgressEvent(ProgressKind.ARCHIVE_BUILT, "2024-04"),
        )
        await reporter.close()
        assert [e.kind for e in seen] == [ProgressKind.ARCHIVE_BUILT]

    @pytest.mark.asyncio
    async def test_publish_before_start_dropped(self):
        seen: list[ProgressEvent] = []
        reporter = ProgressReporter(render=seen.append)
        reporter.publish(ProgressEvent(ProgressKind.COMPLETED, "2024-03"))
        await reporter.start()
        await reporter.close()
        assert seen == []

    @pytest.mark.asyncio
    async def test_renderer_error_does_not_stop_consumer(self):
        seen: list[str] = []

        def flaky(event: ProgressEvent) -> None:
            if event.group_key == "bad":
                raise RuntimeError("render failed")
            seen.append(event.group_key)

        reporter = ProgressReporter(render=flaky)
        await reporter.start()
        reporter.publish(ProgressEvent(ProgressKind.COMPLETED, "bad"))
        reporter.publish(ProgressEvent(ProgressKind.COMPLETED, "good"))
        await reporter.close()
        assert seen == ["good"]

    @pytest.mark.asyncio
    async def test_restartable(self):
        seen: list[str] = []
        reporter = ProgressReporter(render=lambda e: seen.append(e.group_key))
        for key in ("a", "b"):
            await reporter.start()
            reporter.publish(ProgressEvent(ProgressKind.COMPLETED, key))
            await reporter.close()
        assert seen == ["a", "b"]


class TestFileBar:
    @pytest.mark.asyncio
    async def test_archived_files_advance_bar(self):
        reporter = ProgressReporter(bar_file=io.StringIO())
        await reporter.start(files_total=3)
        for i in range(3):
            reporter.publish(ProgressEvent(ProgressKind.FILE_ARCHIVED, "2024-03", i + 1, 3))
        await reporter.close()
        assert reporter.bar.total == 3
        assert reporter.bar.n == 3

    @pytest.mark.asyncio
    async def test_other_events_logged_not_counted(self, caplog):
        reporter = ProgressReporter(bar_file=io.StringIO())
        await reporter.start(files_total=2)
        with caplog.at_level(logging.INFO, logger="photosbackup.pipeline.progress"):
            reporter.publish(ProgressEvent(ProgressKind.FAILED, "2024-04", detail="upload_failed: boom"))
            reporter.publish(ProgressEvent(ProgressKind.COMPLETED, "2024-03", detail="2024-03_x.zip"))
            await reporter.close()
        assert reporter.bar.n == 0
        assert "2024-04 failed: upload_failed: boom" in caplog.text
        assert "2024-03 completed 2024-03_x.zip" in caplog.text

    @pytest.mark.asyncio
    async def test_bar_rendered_to_stream(self):
        stream = io.StringIO()
        reporter = ProgressReporter(bar_file=stream)
        await reporter.start(files_total=1)
        reporter.publish(ProgressEvent(ProgressKind.FILE_ARCHIVED, "2024-03", 1, 1))
        await reporter.close()
        assert "Archiving" in stream.getvalue()
        assert "1/1" in stream.getvalue()
