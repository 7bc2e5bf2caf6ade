"""Tests for the bounded concurrent executor."""

import asyncio

import pytest

from audiobook_designer.executor import run_bounded


def _tracked_tasks(count, delays=None, fail=()):
    """Thunks that record start order and peak concurrency."""
    state = {"active": 0, "peak": 0, "started": []}
    delays = delays or {}

    def make(i):
        async def run():
            state["started"].append(i)
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            try:
                await asyncio.sleep(delays.get(i, 0.01))
                if i in fail:
                    raise RuntimeError(f"task {i} failed")
                return f"result-{i}"
            finally:
                state["active"] -= 1
        return run

    return [make(i) for i in range(count)], state


def test_results_in_input_order():
    tasks, _ = _tracked_tasks(5, delays={0: 0.05, 1: 0.0, 2: 0.03})
    results = asyncio.run(run_bounded(tasks, 3))
    assert results == [f"result-{i}" for i in range(5)]


def test_limit_respected():
    tasks, state = _tracked_tasks(8)
    asyncio.run(run_bounded(tasks, 2))
    assert state["peak"] == 2


def test_failure_isolated():
    """First task fails, one is slow; everything else still completes once."""
    tasks, state = _tracked_tasks(5, delays={3: 0.1}, fail={0})
    errors = {}
    results = asyncio.run(run_bounded(tasks, 2, errors))
    assert results == [None, "result-1", "result-2", "result-3", "result-4"]
    assert list(errors) == [0]
    assert isinstance(errors[0], RuntimeError)
    assert sorted(state["started"]) == [0, 1, 2, 3, 4]
    assert state["peak"] <= 2


def test_slow_task_does_not_block_queue():
    tasks, state = _tracked_tasks(4, delays={0: 0.2})
    asyncio.run(run_bounded(tasks, 2))
    # Worker freed by task 1 picks up 2 and 3 while 0 is still running
    assert state["started"] == [0, 1, 2, 3]
    assert state["peak"] == 2


def test_limit_larger_than_tasks():
    tasks, state = _tracked_tasks(2)
    assert asyncio.run(run_bounded(tasks, 10)) == ["result-0", "result-1"]
    assert state["peak"] == 2


def test_empty_task_list():
    assert asyncio.run(run_bounded([], 3)) == []


def test_invalid_limit():
    with pytest.raises(ValueError):
        asyncio.run(run_bounded([], 0))
