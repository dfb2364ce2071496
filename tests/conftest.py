# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides an in-memory object store with failure injection, a scripted
metadata resolver, media file helpers and ready-made settings.
No external services: S3 is mocked, the library lives in tmp_path.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from helpers import FakeObjectStore
from photosbackup.config.settings import Settings


# === FIXTURES ===


@pytest.fixture
def library(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    d = tmp_path / "state"
    d.mkdir()
    return d


@pytest.fixture
def fake_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def settings(library: Path, state_dir: Path, tmp_path: Path) -> Settings:
    """Settings pointing every file at tmp_path, local store, no .env."""
    return Settings(
        _env_file=None,
        photos_library_path=library,
        last_upload_file=state_dir / "last_upload.txt",
        upload_state_file=state_dir / "upload_state.json",
        archive_work_dir=tmp_path / "work",
        object_store="local",
        local_store_root=tmp_path / "store",
        upload_backoff_unit_s=0.0,
    )
