"""Tests for bounded task batches."""
import asyncio

import pytest

from chunkstore.core.patterns import BatchFailure, run_batch


class TestRunBatch:
    """Test suite for run_batch."""

    @pytest.mark.asyncio
    async def test_results_keep_unit_order(self):
        async def unit(value, delay):
            await asyncio.sleep(delay)
            return value

        results = await run_batch([unit(1, 0.03), unit(2, 0.0), unit(3, 0.01)])

        assert results == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await run_batch([]) == []

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def unit():
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await run_batch([unit() for _ in range(10)], max_concurrency=3)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_failure_waits_for_every_unit(self):
        finished = []

        async def ok(index):
            await asyncio.sleep(0.01)
            finished.append(index)

        async def fail():
            raise ValueError("boom")

        with pytest.raises(BatchFailure) as exc_info:
            await run_batch([ok(0), fail(), ok(2), fail()])

        assert sorted(finished) == [0, 2]
        assert set(exc_info.value.failures) == {1, 3}
        assert exc_info.value.total == 4
        assert isinstance(exc_info.value.first, ValueError)

    @pytest.mark.asyncio
    async def test_collect_mode_returns_exceptions(self):
        async def ok():
            return "ok"

        async def fail():
            raise KeyError("k")

        results = await run_batch([ok(), fail()], return_exceptions=True)

        assert results[0] == "ok"
        assert isinstance(results[1], KeyError)
