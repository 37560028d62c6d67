from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Backoff:
    """How many times to try a call and how long to wait between tries.

    The wait doubles after every failure, starting at ``base_delay_s`` and
    capped at ``max_delay_s`` when one is given.
    """

    attempts: int = 3
    base_delay_s: float = 0.25
    max_delay_s: float | None = None

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")

    def delay_s(self, failures: int) -> float:
        delay = self.base_delay_s * (2**failures)
        return delay if self.max_delay_s is None else min(delay, self.max_delay_s)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    backoff: Backoff | None = None,
    should_retry: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> T:
    """Await ``fn`` until it succeeds, the error is not retryable, or attempts run out.

    The last error is re-raised unchanged.
    """
    backoff = backoff or Backoff()
    failures = 0
    while True:
        try:
            return await fn()
        except Exception as exc:  # noqa: BLE001
            last_attempt = failures + 1 >= backoff.attempts
            if last_attempt or (should_retry is not None and not should_retry(exc)):
                raise
            delay = backoff.delay_s(failures)
            if on_retry is not None:
                on_retry(failures, exc, delay)
            await asyncio.sleep(delay)
            failures += 1
