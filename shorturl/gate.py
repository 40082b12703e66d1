"""Token-bucket admission gate in front of the public entry points.

The bucket holds up to ``capacity`` tokens and refills continuously at
``capacity / period`` tokens per second. A request takes one token. When the
bucket is empty the request waits in a FIFO queue; when the queue is full,
or a queued request waits longer than ``max_wait``, it is rejected.

::
    request ──► token free and nobody queued? ──yes──► admitted
                        │ no
                        ▼
                queue full? ──yes──► AdmissionRejectedError (immediate)
                        │ no
                        ▼
                wait (FIFO) ──token──► admitted
                        │ max_wait elapsed
                        ▼
                AdmissionRejectedError

The gate holds the only process-local mutable state in the service. All of
it is touched from the event loop thread, so no lock is needed; the loop is
looked up lazily so a gate can be built before the loop starts.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable

from prometheus_client import Counter

from shorturl.exceptions import AdmissionRejectedError

__all__ = ["AdmissionGate"]

ADMISSION_REJECTED_TOTAL = Counter(
    "shorturl_admission_rejected_total",
    "Requests rejected by the admission gate",
    ["reason"],
)


class AdmissionGate:
    def __init__(
        self,
        capacity: int,
        period_seconds: float,
        queue_size: int,
        max_wait_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ):
        if capacity <= 0 or period_seconds <= 0:
            raise ValueError("capacity and period_seconds must be positive")
        if queue_size < 0:
            raise ValueError("queue_size must be non-negative")

        self.capacity = capacity
        self.period_seconds = period_seconds
        self.queue_size = queue_size
        self.max_wait_seconds = max_wait_seconds
        self._rate = capacity / period_seconds
        self._clock = clock
        self._logger = logger or logging.getLogger("shorturl")

        self._tokens = float(capacity)
        self._updated_at = clock()
        self._waiters: deque[asyncio.Future] = deque()
        self._wakeup: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, waiting in line if necessary.

        Raises:
            AdmissionRejectedError: If the queue is full or the wait times out.
        """
        self._refill()
        self._prune()

        if not self._waiters and self._tokens >= 1:
            self._tokens -= 1
            return

        if len(self._waiters) >= self.queue_size:
            ADMISSION_REJECTED_TOTAL.labels(reason="queue_full").inc()
            self._logger.warning(f"Admission rejected: queue full ({self.queue_size} waiting)")
            raise AdmissionRejectedError(retry_after=self._seconds_per_token())

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self._schedule_wakeup()

        try:
            async with asyncio.timeout(self.max_wait_seconds):
                await waiter
        except (TimeoutError, asyncio.CancelledError) as exc:
            self._abandon(waiter)
            if isinstance(exc, TimeoutError):
                ADMISSION_REJECTED_TOTAL.labels(reason="timeout").inc()
                self._logger.warning(f"Admission rejected: waited longer than {self.max_wait_seconds}s")
                raise AdmissionRejectedError(retry_after=self._seconds_per_token()) from None
            raise

    async def __aenter__(self) -> "AdmissionGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    def _seconds_per_token(self) -> float:
        return 1 / self._rate

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self._rate)
        self._updated_at = now

    def _prune(self) -> None:
        while self._waiters and self._waiters[0].done():
            self._waiters.popleft()

    def _abandon(self, waiter: asyncio.Future) -> None:
        if waiter.done() and not waiter.cancelled():
            # the token was handed over after the caller gave up; give it back
            self._tokens += 1
            if self._wakeup is not None:
                self._wakeup.cancel()
            self._drain()
            return
        waiter.cancel()
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass

    def _drain(self) -> None:
        self._wakeup = None
        self._refill()
        while self._waiters and self._tokens >= 1:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._tokens -= 1
            waiter.set_result(None)
        self._prune()
        if self._waiters:
            self._schedule_wakeup()

    def _schedule_wakeup(self) -> None:
        if self._wakeup is not None:
            return
        delay = max(0.0, (1 - self._tokens) / self._rate)
        self._wakeup = asyncio.get_running_loop().call_later(delay, self._drain)
