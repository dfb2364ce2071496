# tests/unit/core/test_unit_checksum.py — v1
"""Tests for core/checksum.py."""

from __future__ import annotations

import hashlib

from photosbackup.core.checksum import bytes_sha256, file_sha256


class TestChecksum:
    def test_file_matches_bytes(self, tmp_path):
        data = b"x" * (3 * 1024 * 1024 + 17)
        path = tmp_path / "blob.bin"
        path.write_bytes(data)
        assert file_sha256(path) == bytes_sha256(data)
        assert file_sha256(path) == hashlib.sha256(data).hexdigest()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert file_sha256(path) == hashlib.sha256(b"").hexdigest()

    def test_different_content_differs(self):
        assert bytes_sha256(b"a") != bytes_sha256(b"b")
