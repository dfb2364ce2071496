# src/pipeline/retry.py — v1
"""Upload retry policy with linear backoff.

Attempt 1 runs immediately; after failed attempt N the caller waits
N backoff units before trying again. Store errors are not classified:
every failure is retried the same way.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class UploadRetryExhausted(Exception):
    """All attempts for an upload failed."""

    def __init__(self, label: str, attempts: int, last_error: Exception):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"'{label}' failed after {attempts} attempts: {last_error}")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between."""

    max_attempts: int = 3
    backoff_unit_s: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_unit_s < 0:
            raise ValueError("backoff_unit_s must be >= 0")

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number attempt (1-based)."""
        return self.backoff_unit_s * attempt


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    policy: RetryPolicy | None = None,
    label: str = "operation",
    sleep: Sleep = asyncio.sleep,
    on_retry: Callable[[int, Exception], None] | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async function with the retry policy.

    Args:
        fn: Coroutine function to call.
        policy: Attempts and backoff. Defaults to 3 attempts, 1s unit.
        label: Name used in logs and in the raised error.
        sleep: Awaitable sleep, replaceable in tests.
        on_retry: Called with (failed attempt, error) before each wait.

    Raises:
        UploadRetryExhausted: If every attempt failed.
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            if attempt >= policy.max_attempts:
                raise UploadRetryExhausted(label, attempt, e) from e

            delay = policy.delay_after(attempt)
            logger.warning(
                "'%s' failed (attempt %d/%d): %s — retrying in %.1fs",
                label, attempt, policy.max_attempts, e, delay,
            )
            if on_retry is not None:
                on_retry(attempt, e)
            await sleep(delay)
