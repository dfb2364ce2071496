# src/core/checksum.py — v1
"""SHA-256 content hashes used to verify uploaded archives."""

from __future__ import annotations

import hashlib
from pathlib import Path

_READ_BLOCK = 1024 * 1024


def file_sha256(path: Path) -> str:
    """Hex SHA-256 of a local file, read in 1 MiB blocks."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for block in iter(lambda: fh.read(_READ_BLOCK), b""):
            digest.update(block)
    return digest.hexdigest()


def bytes_sha256(data: bytes) -> str:
    """Hex SHA-256 of an in-memory payload."""
    return hashlib.sha256(data).hexdigest()
