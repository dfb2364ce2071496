# tests/unit/metadata/test_unit_exif_resolver.py — v1
"""Tests for metadata/exif_resolver.py — Pillow-written EXIF fixtures."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from PIL import Image

from photosbackup.metadata.exif_resolver import (
    ExifMetadataResolver,
    _dms_to_degrees,
    _gps_position,
    parse_exif_datetime,
)

TAG_DATETIME = 0x0132
TAG_MODEL = 0x0110


def _jpeg(path: Path, tags: dict[int, str] | None = None) -> Path:
    img = Image.new("RGB", (4, 4), color=(200, 10, 10))
    exif = Image.Exif()
    for tag, value in (tags or {}).items():
        exif[tag] = value
    img.save(path, format="JPEG", exif=exif.tobytes())
    return path


class TestParseExifDatetime:
    def test_valid(self):
        result = parse_exif_datetime("2023:07:14 09:30:05")
        assert result == datetime(2023, 7, 14, 9, 30, 5).astimezone()
        assert result.tzinfo is not None

    def test_bytes_and_trailing_garbage(self):
        assert parse_exif_datetime(b"2023:07:14 09:30:05\x00") == datetime(2023, 7, 14, 9, 30, 5).astimezone()

    @pytest.mark.parametrize("raw", [None, "", "   ", "0000:00:00 00:00:00", "not a date"])
    def test_invalid_returns_none(self, raw):
        assert parse_exif_datetime(raw) is None


class TestGps:
    def test_dms_north_east(self):
        assert _dms_to_degrees((48, 30, 0), "N") == pytest.approx(48.5)

    def test_dms_south_west_negative(self):
        assert _dms_to_degrees((10, 15, 36), b"W") == pytest.approx(-10.26)

    def test_missing_position(self):
        assert _gps_position({}) == (None, None)


class TestExifMetadataResolver:
    def test_reads_datetime_and_model(self, tmp_path):
        path = _jpeg(tmp_path / "a.jpg", {TAG_DATETIME: "2021:12:24 18:00:00", TAG_MODEL: "Pixel 7"})
        meta = ExifMetadataResolver().resolve(path)
        assert meta.captured_at == datetime(2021, 12, 24, 18, 0, 0).astimezone()
        assert meta.camera == "Pixel 7"

    def test_image_without_exif(self, tmp_path):
        path = _jpeg(tmp_path / "plain.jpg")
        meta = ExifMetadataResolver().resolve(path)
        assert meta.captured_at is None
        assert meta.camera is None

    def test_corrupt_image_yields_empty(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"definitely not a jpeg")
        meta = ExifMetadataResolver().resolve(path)
        assert meta.captured_at is None

    def test_video_not_opened(self, tmp_path):
        path = tmp_path / "clip.mov"
        path.write_bytes(b"\x00\x00\x00\x18ftypqt  ")
        assert ExifMetadataResolver().resolve(path).captured_at is None
