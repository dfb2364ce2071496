# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from photosbackup.logging.context import (
    clear_context,
    get_context,
    set_group_context,
    set_run_context,
    set_stage,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.group_key is None
        assert ctx.stage is None
        assert ctx.as_dict() == {}

    def test_set_run_and_group(self):
        set_run_context("run1")
        set_group_context("2024-03")
        set_stage("uploading")
        assert get_context().as_dict() == {"run_id": "run1", "group_key": "2024-03", "stage": "uploading"}

    def test_group_context_resets_stage(self):
        set_group_context("2024-03", "building")
        set_group_context("2024-04")
        assert get_context().stage is None

    def test_clear(self):
        set_run_context("run1")
        clear_context()
        assert get_context().run_id is None

    @pytest.mark.asyncio
    async def test_tasks_do_not_leak_group_context(self):
        set_run_context("run1")

        async def worker(key: str) -> tuple[str | None, str | None]:
            set_group_context(key)
            await asyncio.sleep(0)
            ctx = get_context()
            return ctx.run_id, ctx.group_key

        results = await asyncio.gather(worker("2024-03"), worker("2024-04"))
        assert results == [("run1", "2024-03"), ("run1", "2024-04")]
        assert get_context().group_key is None
