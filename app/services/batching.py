"""Batched, cooldown-separated execution of per-contact work."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from app.config import settings
from app.observability.metrics import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")
Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class BatchOutcome(Generic[T]):
    """Result of processing one work item."""

    item_id: str
    value: T | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchRun(Generic[T]):
    """Outcomes of a full run, in input order."""

    outcomes: list[BatchOutcome[T]] = field(default_factory=list)
    batches: int = 0

    @property
    def values(self) -> list[T]:
        return [outcome.value for outcome in self.outcomes if outcome.ok and outcome.value is not None]

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded


def chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    if size < 1:
        raise ValueError("size must be >= 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BatchOrchestrator:
    """Runs items concurrently within fixed-size batches and cools down after each batch."""

    def __init__(
        self,
        *,
        batch_size: int,
        cooldown_seconds: float,
        name: str = "batch",
        sleep: Sleeper | None = None,
        failure_alert_ratio: float | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        self._batch_size = batch_size
        self._cooldown = cooldown_seconds
        self._name = name
        self._sleep = sleep or asyncio.sleep
        self._failure_alert_ratio = (
            settings.batch_failure_alert_ratio if failure_alert_ratio is None else failure_alert_ratio
        )

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def run(
        self,
        items: Sequence[str],
        worker: Callable[[str], Awaitable[T]],
    ) -> BatchRun[T]:
        outcomes: list[BatchOutcome[T]] = []
        batches = 0
        start = time.perf_counter()
        for batch in chunked(list(items), self._batch_size):
            batches += 1
            results = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
            batch_outcomes = [self._to_outcome(item, result) for item, result in zip(batch, results)]
            outcomes.extend(batch_outcomes)
            failed = sum(1 for outcome in batch_outcomes if not outcome.ok)
            logger.info(
                f"{self._name}.batch_complete",
                extra={"batch": batches, "size": len(batch), "failed": failed},
            )
            await self._sleep(self._cooldown)

        run = BatchRun(outcomes=outcomes, batches=batches)
        metrics.increment(f"{self._name}.items_succeeded", run.succeeded)
        metrics.increment(f"{self._name}.items_failed", run.failed)
        metrics.timing(f"{self._name}.run_ms", (time.perf_counter() - start) * 1000)
        if run.outcomes:
            ratio = run.failed / len(run.outcomes)
            if ratio >= self._failure_alert_ratio and run.failed:
                metrics.alert(
                    f"{self._name}.failure_ratio",
                    value=ratio,
                    threshold=self._failure_alert_ratio,
                    tags={"failed": run.failed, "total": len(run.outcomes)},
                )
        return run

    def _to_outcome(self, item: str, result: object) -> BatchOutcome[T]:
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            code = getattr(result, "code", type(result).__name__)
            logger.warning(
                f"{self._name}.item_failed",
                extra={"item_id": item, "code": code, "error": str(result)},
            )
            return BatchOutcome(item_id=item, error=str(result) or type(result).__name__, error_code=code)
        return BatchOutcome(item_id=item, value=result)  # type: ignore[arg-type]
