"""Admission gate behaviour under bursts, refill and cancellation."""

import asyncio
import time

import pytest

from shorturl.exceptions import AdmissionRejectedError
from shorturl.gate import AdmissionGate


def test_gate_rejects_non_positive_configuration() -> None:
    with pytest.raises(ValueError):
        AdmissionGate(capacity=0, period_seconds=1, queue_size=1)
    with pytest.raises(ValueError):
        AdmissionGate(capacity=1, period_seconds=0, queue_size=1)
    with pytest.raises(ValueError):
        AdmissionGate(capacity=1, period_seconds=1, queue_size=-1)


@pytest.mark.asyncio
async def test_gate_admits_up_to_capacity_immediately() -> None:
    gate = AdmissionGate(capacity=3, period_seconds=60, queue_size=0)
    for _ in range(3):
        await gate.acquire()
    with pytest.raises(AdmissionRejectedError):
        await gate.acquire()


@pytest.mark.asyncio
async def test_gate_burst_beyond_bucket_and_queue_is_rejected_fast() -> None:
    gate = AdmissionGate(capacity=2, period_seconds=60, queue_size=2, max_wait_seconds=0.2)

    start = time.perf_counter()
    results = await asyncio.gather(*(gate.acquire() for _ in range(6)), return_exceptions=True)
    elapsed = time.perf_counter() - start

    admitted = [r for r in results if r is None]
    rejected = [r for r in results if isinstance(r, AdmissionRejectedError)]
    assert len(admitted) == 2
    assert len(rejected) == 4
    # the two overflow requests fail at once, the two queued ones after max_wait
    assert elapsed < 2.0
    assert gate.pending == 0


@pytest.mark.asyncio
async def test_gate_overflow_rejection_does_not_wait() -> None:
    gate = AdmissionGate(capacity=1, period_seconds=60, queue_size=1, max_wait_seconds=30)
    await gate.acquire()
    queued = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)

    start = time.perf_counter()
    with pytest.raises(AdmissionRejectedError) as exc_info:
        await gate.acquire()
    assert time.perf_counter() - start < 0.1
    assert exc_info.value.retry_after == pytest.approx(60.0)

    queued.cancel()
    with pytest.raises(asyncio.CancelledError):
        await queued


@pytest.mark.asyncio
async def test_gate_refills_over_time() -> None:
    gate = AdmissionGate(capacity=1, period_seconds=0.1, queue_size=0)
    await gate.acquire()
    with pytest.raises(AdmissionRejectedError):
        await gate.acquire()

    await asyncio.sleep(0.15)
    await gate.acquire()


@pytest.mark.asyncio
async def test_gate_serves_waiters_in_fifo_order() -> None:
    gate = AdmissionGate(capacity=1, period_seconds=0.05, queue_size=10, max_wait_seconds=2)
    await gate.acquire()
    order: list[int] = []

    async def worker(index: int) -> None:
        await gate.acquire()
        order.append(index)

    await asyncio.gather(*(worker(i) for i in range(4)))
    assert order == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_cancelled_waiter_frees_its_queue_slot() -> None:
    gate = AdmissionGate(capacity=1, period_seconds=60, queue_size=1)
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)
    assert gate.pending == 1

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert gate.pending == 0

    replacement = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)
    assert gate.pending == 1
    replacement.cancel()
    with pytest.raises(asyncio.CancelledError):
        await replacement


@pytest.mark.asyncio
async def test_gate_as_async_context_manager() -> None:
    gate = AdmissionGate(capacity=1, period_seconds=60, queue_size=0)
    async with gate:
        pass
    assert gate.available_tokens < 1


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_gate_token_granted_to_cancelled_waiter_is_returned() -> None:
    clock = FakeClock()
    gate = AdmissionGate(capacity=1, period_seconds=60, queue_size=2, clock=clock)
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)
    assert gate.pending == 1

    clock.now = 60.0
    gate._drain()
    assert gate.available_tokens == 0
    # granted, but the task has not resumed yet
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert gate.available_tokens == 1
    assert gate.pending == 0
    await asyncio.wait_for(gate.acquire(), timeout=0.5)


@pytest.mark.asyncio
async def test_gate_returned_token_serves_next_waiter() -> None:
    clock = FakeClock()
    gate = AdmissionGate(capacity=1, period_seconds=60, queue_size=2, clock=clock)
    await gate.acquire()

    first = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)
    second = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)
    assert gate.pending == 2

    clock.now = 60.0
    gate._drain()
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    await asyncio.wait_for(second, timeout=0.5)
    assert gate.pending == 0
    assert gate.available_tokens == 0
