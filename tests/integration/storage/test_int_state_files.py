# tests/integration/storage/test_int_state_files.py — v1
"""Integration: watermark and ledger files across process-like restarts."""

from __future__ import annotations

import pytest

from helpers import local
from photosbackup.core.models import UploadRecord
from photosbackup.storage.ledger import ProgressLedger
from photosbackup.storage.watermark import read_watermark, write_watermark


class TestStateFiles:
    @pytest.mark.asyncio
    async def test_ledger_survives_reload(self, state_dir):
        path = state_dir / "upload_state.json"
        ledger = ProgressLedger.load(path)
        await ledger.record(UploadRecord(group_key="2024-03", remote_key="2024/a.zip", archive_name="a.zip"))

        reloaded = ProgressLedger.load(path)
        assert reloaded.is_completed("2024-03")
        assert await reloaded.record(
            UploadRecord(group_key="2024-03", remote_key="2024/b.zip", archive_name="b.zip")
        ) is False
        assert ProgressLedger.load(path).completed == {"2024-03": "a.zip"}

    @pytest.mark.asyncio
    async def test_deleting_ledger_makes_everything_pending(self, state_dir):
        path = state_dir / "upload_state.json"
        await ProgressLedger(path).record(
            UploadRecord(group_key="2024-03", remote_key="k", archive_name="a.zip")
        )
        path.unlink()
        assert not ProgressLedger.load(path).is_completed("2024-03")

    def test_watermark_overwrite(self, state_dir):
        path = state_dir / "last_upload.txt"
        write_watermark(path, local(2025, 1, 1))
        write_watermark(path, local(2025, 6, 1))
        assert read_watermark(path) == local(2025, 6, 1)
        assert not (state_dir / "last_upload.txt.tmp").exists()
