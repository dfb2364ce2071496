# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
Entries and groups live for one run; only the progress ledger outlives it
(see storage.ledger).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# === DISCOVERY ===


class MediaMetadata(BaseModel):
    """What the metadata collaborator could tell about one file.

    Every field is optional: a missing tag and a decode error look the same.
    """

    captured_at: datetime | None = None
    camera: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class MediaEntry(BaseModel):
    """A single eligible file discovered during a scan."""

    model_config = ConfigDict(frozen=True)

    path: Path
    resolved_timestamp: datetime
    size_hint: int = 0
    timestamp_source: Literal["capture", "mtime"] = "mtime"
    camera: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def base_name(self) -> str:
        return self.path.name


class ExclusionSummary(BaseModel):
    """Count of skipped files per extension (lower-case, dotted; "" = none)."""

    counts: dict[str, int] = Field(default_factory=dict)

    def add(self, extension: str) -> None:
        self.counts[extension] = self.counts.get(extension, 0) + 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())


class ScanResult(BaseModel):
    """Output of the change detector."""

    scan_root: str
    eligible: list[MediaEntry] = Field(default_factory=list)
    excluded: ExclusionSummary = Field(default_factory=ExclusionSummary)
    older_than_watermark: int = 0
    unreadable: int = 0


# === GROUPING ===


class Group(BaseModel):
    """One (year, month) partition — becomes exactly one archive and one upload."""

    key: str
    members: list[MediaEntry] = Field(default_factory=list)

    @property
    def year(self) -> str:
        return self.key.split("-", 1)[0]

    @property
    def month(self) -> str:
        return self.key.split("-", 1)[1]


class PartitionResult(BaseModel):
    """Groups keyed by "YYYY-MM" plus the duplicates dropped on the way."""

    groups: dict[str, list[MediaEntry]] = Field(default_factory=dict)
    duplicates: list[MediaEntry] = Field(default_factory=list)

    def as_groups(self) -> list[Group]:
        return [Group(key=k, members=v) for k, v in self.groups.items()]


# === ARCHIVE / UPLOAD ===


class ArchiveUnit(BaseModel):
    """A packed archive written to the local work directory."""

    group_key: str
    generated_name: str
    local_path: Path
    member_count: int = 0
    size_bytes: int = 0


class UploadRecord(BaseModel):
    """Proof that a group's archive was durably uploaded."""

    group_key: str
    remote_key: str
    archive_name: str
    completed_at: datetime | None = None


class GroupState(str, Enum):
    """Per-group upload state machine."""

    PENDING = "pending"
    BUILDING = "building"
    BUILT = "built"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureKind(str, Enum):
    ARCHIVE_WRITE_FAILED = "archive_write_failed"
    UPLOAD_FAILED = "upload_failed"
    VERIFICATION_FAILED = "verification_failed"
    UNEXPECTED = "unexpected"


class GroupOutcome(BaseModel):
    """Terminal result of one group's pass through the upload pipeline."""

    group_key: str
    state: GroupState
    states: list[GroupState] = Field(default_factory=list)
    failure: FailureKind | None = None
    skipped: bool = False
    archive_name: str | None = None
    remote_key: str | None = None
    verified: bool | None = None
    error: str | None = None


class RunSummary(BaseModel):
    """End-of-run report: counts first, per-group outcomes after."""

    groups_total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    failed_zips: int = 0
    failed_uploads: int = 0
    failed_verifications: int = 0
    failed_other: int = 0
    files_archived: int = 0
    eligible_files: int = 0
    duplicates: int = 0
    excluded: ExclusionSummary = Field(default_factory=ExclusionSummary)
    test_mode: bool = False
    watermark_advanced: bool = False
    new_watermark: datetime | None = None
    duration_seconds: float = 0.0
    outcomes: list[GroupOutcome] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
