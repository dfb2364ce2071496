# src/pipeline/progress.py — v1
"""Progress events and their single consumer.

Workers (and the archive threads they spawn) only publish events onto a
queue; one consumer task renders them. By default archived files advance
a tqdm bar and every other event becomes a log line. Rendering never
touches the run counters.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import IO, Callable

from tqdm.asyncio import tqdm

logger = logging.getLogger(__name__)


class ProgressKind(str, Enum):
    GROUP_STARTED = "group_started"
    GROUP_SKIPPED = "group_skipped"
    FILE_ARCHIVED = "file_archived"
    ARCHIVE_BUILT = "archive_built"
    UPLOAD_STARTED = "upload_started"
    UPLOAD_RETRY = "upload_retry"
    UPLOADED = "uploaded"
    VERIFIED = "verified"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    kind: ProgressKind
    group_key: str
    files_done: int = 0
    files_total: int = 0
    detail: str = ""


class ProgressReporter:
    """Queue-fed consumer that renders progress events one at a time.

    Args:
        render: Called for each event, in publish order. When omitted the
            reporter drives its own file bar.
        bar_file: Stream for the bar (tqdm's default, stderr, when None).
    """

    def __init__(
        self,
        render: Callable[[ProgressEvent], None] | None = None,
        bar_file: IO[str] | None = None,
    ) -> None:
        self._render = render or self._show
        self._bar_file = bar_file
        self._bar: tqdm | None = None
        self._queue: asyncio.Queue[ProgressEvent | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def bar(self) -> tqdm | None:
        """The file bar of the current (or last) round."""
        return self._bar

    async def start(self, files_total: int = 0) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._bar = tqdm(
            total=files_total, desc="Archiving", unit="file",
            file=self._bar_file, dynamic_ncols=True,
        )
        self._task = asyncio.create_task(self._consume())

    def publish(self, event: ProgressEvent) -> None:
        """Enqueue an event. Safe to call from any thread.

        Events published while the reporter is not running are dropped.
        """
        if self._loop is None or self._queue is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def close(self) -> None:
        """Drain everything published so far, then stop the consumer."""
        if self._task is None or self._queue is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, None)
        try:
            await self._task
        finally:
            if self._bar is not None:
                self._bar.close()
            self._task = None
            self._loop = None
            self._queue = None

    def _show(self, event: ProgressEvent) -> None:
        if event.kind is ProgressKind.FILE_ARCHIVED:
            if self._bar is not None:
                self._bar.set_postfix_str(event.group_key, refresh=False)
                self._bar.update(1)
        elif event.kind is ProgressKind.FAILED:
            logger.info("%s failed: %s", event.group_key, event.detail)
        else:
            logger.info("%s %s %s", event.group_key, event.kind.value, event.detail)

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            if event is None:
                return
            try:
                self._render(event)
            except Exception:
                logger.debug("Progress renderer failed", exc_info=True)
