"""Deduplicating, rate limited work queue of `namespace/name` keys.

A key is held in at most one of three places: waiting in the queue, being
processed by a worker, or parked on a timer for a delayed add. Adding a key
that is already waiting is a no-op; adding a key that is being processed
marks it dirty and it is queued again once the worker calls `done`. This
guarantees no key is ever processed by two workers at the same time.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Hashable, Optional, Set
from blockclaim.sensors.base import OperatorSensor
from blockclaim.types.settings import Settings

logger = logging.getLogger(__name__)

# Put on the queue to wake blocked getters at shutdown
_SHUTDOWN = None


class RateLimiter:
    """Decides how long a failing item waits before it is retried."""

    def when(self, item: Hashable) -> float:
        raise NotImplementedError()

    def forget(self, item: Hashable) -> None:
        raise NotImplementedError()

    def num_requeues(self, item: Hashable) -> int:
        raise NotImplementedError()


class ItemExponentialFailureRateLimiter(RateLimiter):
    """Per-item backoff: `base_delay * 2^failures`, capped at `max_delay`."""

    def __init__(self, base_delay: float, max_delay: float) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: Dict[Hashable, int] = {}

    def when(self, item: Hashable) -> float:
        exp = self._failures.get(item, 0)
        self._failures[item] = exp + 1
        # 2**exp overflows a float long before it matters
        if exp >= 64:
            return self.max_delay
        return min(self.base_delay * (2**exp), self.max_delay)

    def forget(self, item: Hashable) -> None:
        self._failures.pop(item, None)

    def num_requeues(self, item: Hashable) -> int:
        return self._failures.get(item, 0)


class BucketRateLimiter(RateLimiter):
    """Overall token bucket shared by every item.

    Each call reserves a token; when the bucket is empty the returned delay
    is the time until the reserved token is refilled.
    """

    def __init__(
        self, qps: float, burst: int, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if qps <= 0:
            raise ValueError(f"qps must be positive, got {qps}")
        self.qps = qps
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()

    def when(self, item: Hashable) -> float:
        now = self._clock()
        self._tokens = min(float(self.burst), self._tokens + (now - self._last) * self.qps)
        self._last = now
        self._tokens -= 1
        if self._tokens >= 0:
            return 0.0
        return -self._tokens / self.qps

    def forget(self, item: Hashable) -> None:
        pass

    def num_requeues(self, item: Hashable) -> int:
        return 0


class MaxOfRateLimiter(RateLimiter):
    """Waits as long as the most restrictive of its limiters."""

    def __init__(self, *limiters: RateLimiter) -> None:
        self.limiters = limiters

    def when(self, item: Hashable) -> float:
        return max(limiter.when(item) for limiter in self.limiters)

    def forget(self, item: Hashable) -> None:
        for limiter in self.limiters:
            limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return max(limiter.num_requeues(item) for limiter in self.limiters)


def default_controller_rate_limiter(settings: Settings) -> RateLimiter:
    return MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(
            settings.queue_base_delay_seconds, settings.queue_max_delay_seconds
        ),
        BucketRateLimiter(settings.queue_qps, settings.queue_burst),
    )


class WorkQueue:
    """Work queue of reconciliation keys."""

    name: str
    rate_limiter: RateLimiter
    sensor: Optional[OperatorSensor]

    def __init__(
        self,
        rate_limiter: RateLimiter = None,
        name: str = "volumeclaims",
        sensor: OperatorSensor = None,
    ) -> None:
        self.name = name
        self.rate_limiter = rate_limiter or default_controller_rate_limiter(Settings())
        self.sensor = sensor
        self._queue: asyncio.Queue = asyncio.Queue()
        self._dirty: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._added_at: Dict[Hashable, float] = {}
        self._timers: Set[asyncio.TimerHandle] = set()
        self._shutting_down = False

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def __len__(self) -> int:
        """Number of keys waiting to be processed; in-flight keys are not counted."""
        return len(self._dirty)

    @property
    def depth(self) -> int:
        """Number of distinct keys either waiting or being processed."""
        return len(self._dirty | self._processing)

    def __contains__(self, item: Hashable) -> bool:
        return item in self._dirty

    def is_processing(self, item: Hashable) -> bool:
        return item in self._processing

    def add(self, item: Hashable) -> None:
        if self._shutting_down:
            return
        if item in self._dirty:
            return
        self._dirty.add(item)
        self._added_at.setdefault(item, time.monotonic())
        if item in self._processing:
            # Requeued by `done`
            return
        self._queue.put_nowait(item)
        if self.sensor:
            self.sensor.on_reconcile_queued(item, len(self))

    def add_after(self, item: Hashable, delay: float) -> None:
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(item)
            return
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle = None

        def fire():
            self._timers.discard(handle)
            self.add(item)

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)

    def add_rate_limited(self, item: Hashable) -> None:
        delay = self.rate_limiter.when(item)
        logger.debug(f"Requeuing {item} in {delay:.3f}s")
        if self.sensor:
            self.sensor.on_reconcile_requeued(item, self.num_requeues(item), delay)
        self.add_after(item, delay)

    def forget(self, item: Hashable) -> None:
        """Stop tracking failures of `item`, resetting its backoff."""
        self.rate_limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return self.rate_limiter.num_requeues(item)

    async def get(self) -> Optional[Hashable]:
        """Wait for the next key; returns None once the queue is shut down."""
        item = await self._queue.get()
        if item is _SHUTDOWN:
            # Leave the marker for the other waiting workers
            self._queue.put_nowait(_SHUTDOWN)
            return None
        self._processing.add(item)
        self._dirty.discard(item)
        added_at = self._added_at.pop(item, None)
        if self.sensor and added_at is not None:
            self.sensor.on_reconcile_dequeued(item, time.monotonic() - added_at)
        return item

    def done(self, item: Hashable) -> None:
        """Mark `item` as processed; re-queue it if it was added meanwhile."""
        self._processing.discard(item)
        if item in self._dirty and not self._shutting_down:
            self._queue.put_nowait(item)

    def shut_down(self) -> None:
        if self._shutting_down:
            return
        self._shutting_down = True
        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()
        self._queue.put_nowait(_SHUTDOWN)
