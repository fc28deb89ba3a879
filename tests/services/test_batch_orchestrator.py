from __future__ import annotations

import asyncio
import math

import pytest

from app.services import batching as batching_module
from app.services.batching import BatchOrchestrator, chunked
from app.services.errors import ContactNotFoundError
from tests.helpers.metrics_stub import StubMetrics
from tests.helpers.stubs import RecordingSleep


def test_chunked_splits_in_order():
    assert [list(chunk) for chunk in chunked(["a", "b", "c", "d", "e"], 2)] == [
        ["a", "b"],
        ["c", "d"],
        ["e"],
    ]


def test_invalid_batch_size_rejected():
    with pytest.raises(ValueError):
        BatchOrchestrator(batch_size=0, cooldown_seconds=1)


@pytest.mark.asyncio
@pytest.mark.parametrize(("total", "batch_size"), [(0, 3), (1, 3), (5, 5), (7, 3), (10, 1)])
async def test_one_cooldown_per_batch(total, batch_size):
    sleep = RecordingSleep()
    orchestrator = BatchOrchestrator(batch_size=batch_size, cooldown_seconds=2.0, sleep=sleep)

    async def worker(item: str) -> str:
        return item.upper()

    run = await orchestrator.run([f"id-{i}" for i in range(total)], worker)

    assert len(sleep.calls) == math.ceil(total / batch_size)
    assert all(delay == 2.0 for delay in sleep.calls)
    assert run.batches == math.ceil(total / batch_size)
    assert run.succeeded + run.failed == total


@pytest.mark.asyncio
async def test_failures_are_isolated_and_counted(monkeypatch):
    stub = StubMetrics()
    monkeypatch.setattr(batching_module, "metrics", stub)
    orchestrator = BatchOrchestrator(
        batch_size=2, cooldown_seconds=0, name="verification", sleep=RecordingSleep()
    )

    async def worker(item: str) -> str:
        if item == "missing":
            raise ContactNotFoundError(item)
        if item == "boom":
            raise ValueError("unexpected payload")
        return f"ok:{item}"

    run = await orchestrator.run(["a", "missing", "b", "boom", "c"], worker)

    assert run.values == ["ok:a", "ok:b", "ok:c"]
    assert run.succeeded == 3
    assert run.failed == 2
    failed = {outcome.item_id: outcome.error_code for outcome in run.outcomes if not outcome.ok}
    assert failed == {"missing": "404_CONTACT_NOT_FOUND", "boom": "ValueError"}
    assert stub.counted("verification.items_succeeded") == 3
    assert stub.counted("verification.items_failed") == 2


@pytest.mark.asyncio
async def test_all_failures_still_produce_a_run():
    orchestrator = BatchOrchestrator(batch_size=3, cooldown_seconds=0, sleep=RecordingSleep())

    async def worker(item: str) -> str:
        raise ContactNotFoundError(item)

    run = await orchestrator.run(["x", "y"], worker)

    assert run.values == []
    assert run.failed == 2


@pytest.mark.asyncio
async def test_items_within_a_batch_run_concurrently():
    orchestrator = BatchOrchestrator(batch_size=3, cooldown_seconds=0, sleep=RecordingSleep())
    in_flight = 0
    peak = 0

    async def worker(item: str) -> str:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return item

    await orchestrator.run(["a", "b", "c", "d"], worker)

    assert peak == 3


@pytest.mark.asyncio
async def test_alert_when_failure_ratio_crosses_threshold(monkeypatch):
    stub = StubMetrics()
    monkeypatch.setattr(batching_module, "metrics", stub)
    orchestrator = BatchOrchestrator(
        batch_size=2,
        cooldown_seconds=0,
        name="intelligence",
        sleep=RecordingSleep(),
        failure_alert_ratio=0.5,
    )

    async def worker(item: str) -> str:
        if item.startswith("missing"):
            raise ContactNotFoundError(item)
        return item

    await orchestrator.run(["missing-1", "missing-2", "ok"], worker)
    assert len(stub.alert_calls) == 1
    alert = stub.alert_calls[0]
    assert alert["metric"] == "intelligence.failure_ratio"
    assert alert["tags"] == {"failed": 2, "total": 3}

    stub.alert_calls.clear()
    await orchestrator.run(["ok-1", "ok-2", "missing-3"], worker)
    assert stub.alert_calls == []
