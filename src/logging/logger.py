# src/logging/logger.py — v1
"""Formatters and the one-call logging setup used by the CLI.

Two renderings of the same record: JSON lines for log shippers and a
compact text line for terminals. Both read the run/group/stage context
from logging.context, so worker tasks never pass it around by hand.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from photosbackup.logging.context import get_context

# Third-party loggers that are chatty at INFO.
NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3", "PIL")

PACKAGE_LOGGER = "photosbackup"


def _record_time(record: logging.LogRecord, tz: timezone | None = None) -> datetime:
    return datetime.fromtimestamp(record.created, tz=tz)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _record_time(record, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            payload["context"] = context
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """`2024-05-01 12:00:00 [INFO    ] name [2024-05] (uploading) — message`"""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        head = f"{_record_time(record):%Y-%m-%d %H:%M:%S} [{record.levelname:8s}] {record.name}"
        tags = "".join(
            f" {tag}" for tag in (
                f"[{ctx.group_key}]" if ctx.group_key else "",
                f"({ctx.stage})" if ctx.stage else "",
            ) if tag
        )
        line = f"{head}{tags} — {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> None:
    """Attach console (and optionally file) handlers to the package logger.

    Safe to call again: previous handlers are dropped first.

    Args:
        level: Log level name; unknown names fall back to INFO.
        log_format: "json" or "text" (anything else renders as text).
        log_file: Rotating log file path, or None for stderr only.
        rotation: Size at which the file rolls over (e.g. "10MB").
        retention: Rotated files kept next to the active one.
    """
    formatter = _FORMATTERS.get(log_format, TextFormatter)()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from photosbackup.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
