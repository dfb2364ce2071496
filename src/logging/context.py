# src/logging/context.py — v1
"""Contextual logging support — attach run_id, group_key, stage to log records.

Each group worker runs in its own asyncio task (and archive threads copy
the task's context), so setting the group key in a worker tags every
line that worker emits.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_group_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "group_key", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    group_key: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        group_key=_group_key.get(),
        stage=_stage.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per backup run)."""
    _run_id.set(run_id)


def set_group_context(group_key: str, stage: str | None = None) -> None:
    """Set group-level context (called per worker)."""
    _group_key.set(group_key)
    _stage.set(stage)


def set_stage(stage: str | None) -> None:
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _group_key.set(None)
    _stage.set(None)
