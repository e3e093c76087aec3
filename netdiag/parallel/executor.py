"""
Parallel probe execution infrastructure.

Provides the building blocks shared by port scans and URL batches: a counting
throttler that bounds in-flight probes, a deadline that races an operation
against its timeout, a lock-protected result accumulator, and an executor that
streams results in completion order.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from loguru import logger

from netdiag.core.errors import InvalidArgumentError

T = TypeVar("T")
R = TypeVar("R")


class Deadline:
    """
    A point in time by which an operation must complete.

    ``run()`` resolves to the first of: the awaitable completes, or the
    deadline elapses (``asyncio.TimeoutError``, with the awaitable cancelled).
    One deadline is created per probe and shared by every step of that probe.
    """

    def __init__(self, timeout: float):
        if timeout < 0:
            raise InvalidArgumentError(f"Timeout must be >= 0, got {timeout}")
        self.timeout = timeout
        self.started = time.monotonic()

    @classmethod
    def after_ms(cls, timeout_ms: int) -> "Deadline":
        return cls(timeout_ms / 1000.0)

    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def elapsed_ms(self) -> int:
        return int(self.elapsed() * 1000)

    def remaining(self) -> float:
        return max(0.0, self.timeout - self.elapsed())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    async def run(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.remaining())


class ConcurrencyThrottler:
    """
    Counting gate limiting simultaneous in-flight probes.

    Use ``async with throttler:`` for scoped acquisition, or pair ``acquire()``
    with a ``release()`` in a ``finally`` block.
    """

    def __init__(self, max_concurrency: int):
        if max_concurrency < 1:
            raise InvalidArgumentError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.in_flight = 0
        self.high_water_mark = 0

    async def acquire(self) -> None:
        await self._semaphore.acquire()
        self.in_flight += 1
        if self.in_flight > self.high_water_mark:
            self.high_water_mark = self.in_flight

    def release(self) -> None:
        self.in_flight -= 1
        self._semaphore.release()

    async def __aenter__(self) -> "ConcurrencyThrottler":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


class ResultAccumulator(Generic[T]):
    """Append-only result collection guarded by a mutex."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: List[T] = []

    def append(self, item: T) -> None:
        with self._lock:
            self._items.append(item)

    def snapshot(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass
class ParallelConfig:
    """Configuration for parallel probe execution."""
    max_concurrency: int = 50


class ParallelProbeExecutor:
    """
    Run one async probe per item with bounded parallelism.

    A throttle slot is acquired before each probe task is created, so at most
    ``max_concurrency`` tasks exist at once even for 65535 items. Batches
    running concurrently on one executor share the same throttler, so the
    bound and the high-water mark cover all of them.
    """

    def __init__(self, config: Optional[ParallelConfig] = None):
        self.config = config or ParallelConfig()
        if self.config.max_concurrency < 1:
            raise InvalidArgumentError(
                f"max_concurrency must be >= 1, got {self.config.max_concurrency}"
            )
        self._throttler: Optional[ConcurrencyThrottler] = None
        self._throttler_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def throttler(self) -> ConcurrencyThrottler:
        """The throttler bound to the running event loop, created on first use."""
        loop = asyncio.get_running_loop()
        if self._throttler is None or self._throttler_loop is not loop:
            self._throttler = ConcurrencyThrottler(self.config.max_concurrency)
            self._throttler_loop = loop
        return self._throttler

    async def stream(
        self,
        items: Sequence[T],
        probe_func: Callable[[T], Awaitable[R]],
        on_error: Callable[[T, Exception], R],
        accumulator: Optional[ResultAccumulator[R]] = None,
    ) -> AsyncIterator[R]:
        """
        Yield results in completion order as probes finish.

        Args:
            items: Work items; one probe per item
            probe_func: Async probe for one item
            on_error: Converts an exception escaping ``probe_func`` into a result,
                so the batch always yields exactly ``len(items)`` results
            accumulator: Optional shared collection every result is appended to
        """
        throttler = self.throttler
        queue: asyncio.Queue = asyncio.Queue()
        tasks: set = set()

        async def run_one(item: T) -> None:
            try:
                result = await probe_func(item)
            except Exception as e:
                logger.warning(f"Probe for {item!r} raised {type(e).__name__}: {e}")
                result = on_error(item, e)
            if accumulator is not None:
                accumulator.append(result)
            queue.put_nowait(result)

        async def dispatch() -> None:
            for item in items:
                await throttler.acquire()
                task = asyncio.create_task(run_one(item))
                tasks.add(task)
                task.add_done_callback(tasks.discard)
                # released even when the task is cancelled before it starts
                task.add_done_callback(lambda _task: throttler.release())

        dispatcher = asyncio.create_task(dispatch())
        try:
            for _ in range(len(items)):
                yield await queue.get()
            await dispatcher
        finally:
            pending = [t for t in (dispatcher, *tasks) if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def run(
        self,
        items: Sequence[T],
        probe_func: Callable[[T], Awaitable[R]],
        on_error: Callable[[T, Exception], R],
    ) -> List[R]:
        """Run every probe and return the accumulated results (completion order)."""
        accumulator: ResultAccumulator[R] = ResultAccumulator()
        async for _ in self.stream(items, probe_func, on_error, accumulator):
            pass
        return accumulator.snapshot()

    def get_summary(self) -> Dict[str, Any]:
        """Concurrency figures across every batch run so far."""
        throttler = self._throttler
        return {
            "max_concurrency": self.config.max_concurrency,
            "high_water_mark": throttler.high_water_mark if throttler else 0,
        }
