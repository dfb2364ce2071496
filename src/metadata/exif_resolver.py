# src/metadata/exif_resolver.py — v1
"""EXIF metadata resolver backed by Pillow.

Reads DateTimeOriginal (falling back to the IFD0 DateTime), the camera
Model and the GPS position. Video containers and formats Pillow cannot
open yield an empty MediaMetadata.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from PIL import Image
from PIL.ExifTags import GPS, IFD, Base

from photosbackup.core.models import MediaMetadata
from photosbackup.metadata.base_resolver import BaseMetadataResolver

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Only these are handed to Pillow; everything else goes straight to mtime.
IMAGE_EXTENSIONS: frozenset[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".tif", ".tiff", ".webp", ".heic", ".heif",
})


class ExifMetadataResolver(BaseMetadataResolver):
    """Extract capture time, camera and GPS from image EXIF tags."""

    def __init__(self, image_extensions: frozenset[str] = IMAGE_EXTENSIONS) -> None:
        self._image_extensions = image_extensions

    def resolve(self, path: Path) -> MediaMetadata:
        if path.suffix.lower() not in self._image_extensions:
            return MediaMetadata()
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                exif_ifd = exif.get_ifd(IFD.Exif)
                gps_ifd = exif.get_ifd(IFD.GPSInfo)
                raw_taken = exif_ifd.get(Base.DateTimeOriginal) or exif.get(Base.DateTime)
                camera = exif.get(Base.Model)
        except Exception:
            logger.debug("No readable EXIF in %s", path, exc_info=True)
            return MediaMetadata()

        latitude, longitude = _gps_position(gps_ifd)
        return MediaMetadata(
            captured_at=parse_exif_datetime(raw_taken),
            camera=_clean_text(camera),
            latitude=latitude,
            longitude=longitude,
        )


def parse_exif_datetime(raw: Any) -> datetime | None:
    """Parse an EXIF "YYYY:MM:DD HH:MM:SS" value as local time.

    Returns None for missing, blank or zeroed-out values.
    """
    text = _clean_text(raw)
    if not text:
        return None
    try:
        naive = datetime.strptime(text[:19], EXIF_DATETIME_FORMAT)
    except ValueError:
        return None
    return naive.astimezone()


def _gps_position(gps_ifd: dict) -> tuple[float | None, float | None]:
    try:
        lat = _dms_to_degrees(gps_ifd[GPS.GPSLatitude], gps_ifd.get(GPS.GPSLatitudeRef))
        lon = _dms_to_degrees(gps_ifd[GPS.GPSLongitude], gps_ifd.get(GPS.GPSLongitudeRef))
    except (KeyError, TypeError, ValueError, ZeroDivisionError):
        return None, None
    return lat, lon


def _dms_to_degrees(dms: Any, ref: Any) -> float:
    degrees, minutes, seconds = (float(v) for v in dms)
    value = degrees + minutes / 60.0 + seconds / 3600.0
    if _clean_text(ref) in ("S", "W"):
        value = -value
    return value


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip().strip("\x00").strip()
    return text or None
