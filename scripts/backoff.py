"""Exponential backoff helpers for provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from random import SystemRandom
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_backoff(
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    factor: float = 2.0,
    max_delay: float = 5.0,
    jitter: float = 0.2,
) -> Iterator[tuple[int, float]]:
    """Yield (attempt, delay_seconds) pairs for exponential backoff with jitter."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if base_delay <= 0 or max_delay <= 0:
        raise ValueError("delays must be > 0")
    if factor < 1:
        raise ValueError("factor must be >= 1")
    if jitter < 0:
        raise ValueError("jitter must be >= 0")

    rng = SystemRandom()
    delay = base_delay
    for attempt in range(1, max_attempts + 1):
        offset = rng.uniform(0, delay * jitter) if jitter else 0.0
        yield attempt, min(delay + offset, max_delay)
        delay = min(delay * factor, max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    retry_on: tuple[type[BaseException], ...],
    max_attempts: int = 3,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    label: str = "operation",
) -> T:
    """Await ``operation`` until it succeeds, re-raising the last retryable error once attempts run out."""
    pause = sleep or asyncio.sleep
    for attempt, delay in exponential_backoff(max_attempts=max_attempts):
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_attempts:
                raise
            logger.warning(
                f"{label}.retry",
                extra={"attempt": attempt, "delay": round(delay, 3), "code": getattr(exc, "code", None)},
            )
            await pause(delay)
    raise RuntimeError("unreachable")  # pragma: no cover
