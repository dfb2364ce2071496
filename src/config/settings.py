# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings. Every field
can be set through the environment variable of the same name in upper
case (e.g. S3_BUCKET, MAX_CONCURRENT_UPLOADS).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_EXTENSIONS = ".jpg,.jpeg,.png,.heic,.mov,.mp4"


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Source library ===
    photos_library_path: Path = Path("~/Pictures")
    allowed_extensions: str = DEFAULT_ALLOWED_EXTENSIONS

    # === Run state files ===
    last_upload_file: Path = Path("last_upload.txt")
    upload_state_file: Path = Path("upload_state.json")
    archive_work_dir: Path = Path(".")

    # === Object store ===
    object_store: Literal["s3", "local"] = "s3"
    s3_bucket: str = ""
    s3_region: str = ""
    s3_endpoint_url: str = ""
    s3_connect_timeout_s: float = 60.0
    s3_read_timeout_s: float = 300.0
    local_store_root: Path = Path("~/photos-backup-store")
    s3_key_format: str = "{year}/{zip}"
    storage_class: str = "STANDARD"

    # === Upload pipeline ===
    max_concurrent_uploads: int = 3
    upload_max_attempts: int = 3
    upload_backoff_unit_s: float = 1.0
    archive_compression: Literal["stored", "deflated"] = "deflated"
    verify_uploads: bool = True
    verify_mismatch_policy: Literal["warn", "fail"] = "warn"

    # === Watermark / ledger lifecycle ===
    advance_watermark_on_failure: bool = False
    reset_ledger_on_advance: bool = False

    # === Extras ===
    test_mode_limit: int = 0
    metadata_manifest_enabled: bool = False
    metadata_manifest_key: str = "photo_metadata.json"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("storage_class")
    @classmethod
    def normalize_storage_class(cls, v: str) -> str:  # noqa: N805
        return v.strip().upper()

    @field_validator("test_mode_limit")
    @classmethod
    def validate_test_mode_limit(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("test_mode_limit must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.object_store == "s3" and not self.s3_bucket:
            errors.append("OBJECT_STORE=s3 requires S3_BUCKET")

        if not self.allowed_extensions_list:
            errors.append("ALLOWED_EXTENSIONS must name at least one extension")

        if self.max_concurrent_uploads < 1:
            errors.append("MAX_CONCURRENT_UPLOADS must be >= 1")

        if self.upload_max_attempts < 1:
            errors.append("UPLOAD_MAX_ATTEMPTS must be >= 1")

        if self.upload_backoff_unit_s < 0:
            errors.append("UPLOAD_BACKOFF_UNIT_S must be >= 0")

        if "{zip}" not in self.s3_key_format:
            errors.append("S3_KEY_FORMAT must contain {zip}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def allowed_extensions_list(self) -> list[str]:
        """Parse comma-separated extensions into lower-case dotted form."""
        exts = []
        for raw in self.allowed_extensions.split(","):
            ext = raw.strip().lower()
            if ext:
                exts.append(ext if ext.startswith(".") else f".{ext}")
        return exts

    @property
    def test_mode(self) -> bool:
        return self.test_mode_limit > 0

    @property
    def effective_upload_state_file(self) -> Path:
        """Ledger path; test runs keep their own "test-" prefixed ledger."""
        path = self.upload_state_file
        if self.test_mode:
            return path.with_name(f"test-{path.name}")
        return path


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
