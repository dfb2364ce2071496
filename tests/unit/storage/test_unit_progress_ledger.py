# tests/unit/storage/test_unit_progress_ledger.py — v1
"""Tests for storage/ledger.py — persistence and at-most-once recording."""

from __future__ import annotations

import asyncio
import json

import pytest

from photosbackup.core.models import UploadRecord
from photosbackup.storage.ledger import LedgerState, ProgressLedger, load_ledger, save_ledger


def _record(key: str) -> UploadRecord:
    return UploadRecord(group_key=key, remote_key=f"2024/{key}.zip", archive_name=f"{key}.zip")


class TestLoadSave:
    def test_missing_file_is_empty(self, tmp_path):
        assert load_ledger(tmp_path / "none.json").completed_months == {}

    def test_round_trip(self, tmp_path):
        path = tmp_path / "state" / "ledger.json"
        save_ledger(path, LedgerState(completed_months={"2024-03": "a.zip"}, remote_keys={"2024-03": "2024/a.zip"}))
        state = load_ledger(path)
        assert state.completed_months == {"2024-03": "a.zip"}
        assert state.remote_keys == {"2024-03": "2024/a.zip"}
        assert not (tmp_path / "state" / "ledger.json.tmp").exists()

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"completed_months": 5}'])
    def test_unreadable_file_is_empty(self, tmp_path, content):
        path = tmp_path / "ledger.json"
        path.write_text(content)
        assert load_ledger(path).completed_months == {}

    def test_unreadable_path_is_empty(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.mkdir()
        assert load_ledger(path).completed_months == {}

    def test_accepts_legacy_shape(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"completed_months": {"2023-12": "2023-12_x.zip"}}))
        assert load_ledger(path).completed_months == {"2023-12": "2023-12_x.zip"}


class TestProgressLedger:
    @pytest.mark.asyncio
    async def test_record_flushes_immediately(self, tmp_path):
        path = tmp_path / "ledger.json"
        ledger = ProgressLedger(path)
        assert await ledger.record(_record("2024-03")) is True
        assert ledger.is_completed("2024-03")
        assert load_ledger(path).completed_months == {"2024-03": "2024-03.zip"}

    @pytest.mark.asyncio
    async def test_record_at_most_once(self, tmp_path):
        ledger = ProgressLedger(tmp_path / "ledger.json")
        assert await ledger.record(_record("2024-03")) is True
        assert await ledger.record(_record("2024-03")) is False
        assert ledger.completed == {"2024-03": "2024-03.zip"}

    @pytest.mark.asyncio
    async def test_concurrent_records_all_persisted(self, tmp_path):
        path = tmp_path / "ledger.json"
        ledger = ProgressLedger(path)
        keys = [f"2023-{m:02d}" for m in range(1, 13)]
        results = await asyncio.gather(*(ledger.record(_record(k)) for k in keys))
        assert all(results)
        assert sorted(load_ledger(path).completed_months) == keys

    @pytest.mark.asyncio
    async def test_flush_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        ledger = ProgressLedger(blocker / "ledger.json")
        assert await ledger.record(_record("2024-03")) is False

    @pytest.mark.asyncio
    async def test_reset(self, tmp_path):
        path = tmp_path / "ledger.json"
        ledger = ProgressLedger.load(path)
        await ledger.record(_record("2024-03"))
        await ledger.reset()
        assert ledger.completed == {}
        assert ProgressLedger.load(path).completed == {}
