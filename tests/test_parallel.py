"""Tests for parallel probe execution infrastructure."""
import asyncio

import pytest

from netdiag.core.errors import InvalidArgumentError
from netdiag.parallel.executor import (
    ConcurrencyThrottler,
    Deadline,
    ParallelConfig,
    ParallelProbeExecutor,
    ResultAccumulator,
)


@pytest.fixture
def parallel_config():
    """Create a parallel probe configuration."""
    return ParallelConfig(max_concurrency=3)


class TestParallelConfig:
    """Test ParallelConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        assert ParallelConfig().max_concurrency == 50

    def test_executor_rejects_zero_concurrency(self):
        """A concurrency limit below one is refused."""
        with pytest.raises(InvalidArgumentError):
            ParallelProbeExecutor(ParallelConfig(max_concurrency=0))


class TestDeadline:
    """Test Deadline."""

    def test_negative_timeout_rejected(self):
        with pytest.raises(InvalidArgumentError):
            Deadline(-1)

    def test_after_ms_converts_to_seconds(self):
        deadline = Deadline.after_ms(1500)
        assert deadline.timeout == 1.5
        assert 0 < deadline.remaining() <= 1.5
        assert deadline.expired is False

    def test_zero_timeout_is_expired(self):
        assert Deadline(0).expired is True

    @pytest.mark.asyncio
    async def test_run_returns_result_before_deadline(self):
        """An operation finishing in time yields its result."""

        async def quick():
            return "done"

        assert await Deadline(1.0).run(quick()) == "done"

    @pytest.mark.asyncio
    async def test_run_times_out_and_cancels(self):
        """An operation outliving its deadline is cancelled and TimeoutError raised."""
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(asyncio.TimeoutError):
            await Deadline.after_ms(20).run(slow())
        assert cancelled.is_set()


class TestConcurrencyThrottler:
    """Test ConcurrencyThrottler."""

    def test_rejects_zero(self):
        with pytest.raises(InvalidArgumentError):
            ConcurrencyThrottler(0)

    @pytest.mark.asyncio
    async def test_tracks_in_flight_and_high_water_mark(self):
        throttler = ConcurrencyThrottler(2)
        async with throttler:
            assert throttler.in_flight == 1
            async with throttler:
                assert throttler.in_flight == 2
        assert throttler.in_flight == 0
        assert throttler.high_water_mark == 2

    @pytest.mark.asyncio
    async def test_third_acquire_waits_for_release(self):
        """With two slots taken a third acquire blocks until one is released."""
        throttler = ConcurrencyThrottler(2)
        await throttler.acquire()
        await throttler.acquire()

        waiter = asyncio.create_task(throttler.acquire())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        throttler.release()
        await asyncio.wait_for(waiter, timeout=1)
        assert throttler.in_flight == 2
        assert throttler.high_water_mark == 2


def test_result_accumulator_snapshot_is_a_copy():
    """Snapshots do not change when more results arrive."""
    accumulator = ResultAccumulator()
    accumulator.append(1)
    snapshot = accumulator.snapshot()
    accumulator.append(2)
    assert snapshot == [1]
    assert len(accumulator) == 2


class TestParallelProbeExecutor:
    """Test ParallelProbeExecutor."""

    @pytest.mark.asyncio
    async def test_one_result_per_item(self, parallel_config):
        executor = ParallelProbeExecutor(parallel_config)

        async def probe(item):
            await asyncio.sleep(0.001)
            return item * 10

        results = await executor.run(list(range(20)), probe, lambda item, e: -1)
        assert sorted(results) == [i * 10 for i in range(20)]

    @pytest.mark.asyncio
    async def test_never_exceeds_concurrency(self, parallel_config):
        """At most max_concurrency probes run at the same time."""
        executor = ParallelProbeExecutor(parallel_config)
        running = 0
        peak = 0

        async def probe(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.005)
            running -= 1
            return item

        await executor.run(list(range(25)), probe, lambda item, e: None)
        assert peak <= 3
        summary = executor.get_summary()
        assert summary["max_concurrency"] == 3
        assert 1 <= summary["high_water_mark"] <= 3

    @pytest.mark.asyncio
    async def test_exceptions_become_results(self, parallel_config):
        """A probe that raises is converted by on_error instead of aborting the batch."""
        executor = ParallelProbeExecutor(parallel_config)

        async def probe(item):
            if item == 2:
                raise RuntimeError("boom")
            return f"ok-{item}"

        results = await executor.run([1, 2, 3], probe, lambda item, e: f"error-{item}-{e}")
        assert sorted(results) == ["error-2-boom", "ok-1", "ok-3"]

    @pytest.mark.asyncio
    async def test_stream_yields_in_completion_order(self):
        executor = ParallelProbeExecutor(ParallelConfig(max_concurrency=3))
        delays = {"slow": 0.08, "medium": 0.04, "fast": 0.0}

        async def probe(item):
            await asyncio.sleep(delays[item])
            return item

        seen = [r async for r in executor.stream(["slow", "medium", "fast"], probe, lambda i, e: None)]
        assert seen == ["fast", "medium", "slow"]

    @pytest.mark.asyncio
    async def test_stream_fills_accumulator(self, parallel_config):
        executor = ParallelProbeExecutor(parallel_config)
        accumulator = ResultAccumulator()

        async def probe(item):
            return item

        async for _ in executor.stream([1, 2, 3], probe, lambda i, e: None, accumulator):
            pass
        assert sorted(accumulator.snapshot()) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_empty_batch(self, parallel_config):
        executor = ParallelProbeExecutor(parallel_config)

        async def probe(item):
            return item

        assert await executor.run([], probe, lambda i, e: None) == []
        assert executor.get_summary()["high_water_mark"] == 0

    @pytest.mark.asyncio
    async def test_closing_stream_early_frees_every_slot(self):
        """Probes cancelled by closing the stream give their throttle slots back."""
        executor = ParallelProbeExecutor(ParallelConfig(max_concurrency=2))

        async def probe(item):
            await asyncio.sleep(0 if item == 0 else 5)
            return item

        stream = executor.stream(list(range(10)), probe, lambda i, e: None)
        assert await stream.__anext__() == 0
        await stream.aclose()
        await asyncio.sleep(0)
        assert executor.throttler.in_flight == 0

        async def quick(item):
            return item

        assert sorted(await executor.run([1, 2, 3], quick, lambda i, e: None)) == [1, 2, 3]

    def test_summary_before_any_batch(self):
        assert ParallelProbeExecutor().get_summary() == {"max_concurrency": 50, "high_water_mark": 0}
