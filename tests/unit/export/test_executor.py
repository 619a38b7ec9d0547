"""Tests for the bounded concurrent executor."""

import asyncio
import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ghexport.cancellation import AbortController, AbortError
from ghexport.export.executor import DEFAULT_CONCURRENCY, execute_tasks, normalize_concurrency


def _task(value, delay=0.0, tracker=None):
    async def run():
        if tracker is not None:
            tracker["active"] += 1
            tracker["peak"] = max(tracker["peak"], tracker["active"])
        await asyncio.sleep(delay)
        if tracker is not None:
            tracker["active"] -= 1
        return value

    return run


class TestNormalizeConcurrency:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, DEFAULT_CONCURRENCY),
            (4, 4),
            (2.9, 2),
            (0, 1),
            (-3, 1),
            (math.inf, 1),
            (math.nan, 1),
            ("4", 1),
            (True, 1),
        ],
    )
    def test_clamping(self, value, expected):
        assert normalize_concurrency(value) == expected


class TestExecuteTasks:
    @pytest.mark.asyncio
    async def test_empty_returns_empty(self):
        assert await execute_tasks([]) == []

    @pytest.mark.asyncio
    async def test_results_follow_input_order(self):
        # later tasks finish first
        tasks = [_task(i, delay=(5 - i) * 0.002) for i in range(5)]
        assert await execute_tasks(tasks, concurrency=5) == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_never_exceeds_concurrency(self):
        tracker = {"active": 0, "peak": 0}
        tasks = [_task(i, delay=0.002, tracker=tracker) for i in range(10)]

        await execute_tasks(tasks, concurrency=3)

        assert tracker["peak"] <= 3

    @pytest.mark.asyncio
    async def test_invalid_concurrency_runs_sequentially(self):
        tracker = {"active": 0, "peak": 0}
        tasks = [_task(i, delay=0.001, tracker=tracker) for i in range(4)]

        assert await execute_tasks(tasks, concurrency=0) == [0, 1, 2, 3]
        assert tracker["peak"] == 1

    @pytest.mark.asyncio
    async def test_pre_aborted_signal_runs_nothing(self):
        controller = AbortController()
        controller.abort()
        calls = []

        async def record():
            calls.append(1)

        with pytest.raises(AbortError):
            await execute_tasks([record, record], concurrency=2, signal=controller.signal)
        assert calls == []

    @pytest.mark.asyncio
    async def test_abort_stops_claiming_new_tasks(self):
        controller = AbortController()
        started = []

        def make(i):
            async def run():
                started.append(i)
                if i == 0:
                    controller.abort()
                return i

            return run

        with pytest.raises(AbortError):
            await execute_tasks([make(i) for i in range(5)], concurrency=1, signal=controller.signal)
        assert started == [0]

    @pytest.mark.asyncio
    async def test_task_error_propagates(self):
        async def boom():
            raise ValueError("bad task")

        with pytest.raises(ValueError, match="bad task"):
            await execute_tasks([_task(1), boom, _task(3)], concurrency=2)


@given(
    values=st.lists(st.integers(), max_size=20),
    concurrency=st.integers(min_value=1, max_value=8),
)
@settings(max_examples=50, deadline=None)
def test_output_order_matches_input(values, concurrency):
    tasks = [_task(v) for v in values]
    assert asyncio.run(execute_tasks(tasks, concurrency=concurrency)) == values
