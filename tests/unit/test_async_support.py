# tests/unit/test_async_support.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from formstore.core.errors import EventLoopError
from formstore.runtime.async_support import detach, finish_on_all, finish_on_first_failed, schedule


async def _value(delay, value):
    await asyncio.sleep(delay)
    return value


def test_schedule_without_loop_raises():
    coro = _value(0, 1)
    with pytest.raises(EventLoopError):
        schedule(coro)
    # The coroutine was closed, so no "never awaited" warning is left behind
    assert coro.cr_frame is None


@pytest.mark.asyncio
async def test_schedule_runs_on_running_loop():
    task = schedule(_value(0, "done"))
    assert not task.done()
    assert await task == "done"


@pytest.mark.asyncio
async def test_detached_task_failure_is_consumed():
    async def fail():
        raise ValueError("ignored")

    task = detach(schedule(fail()))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert task.done()
    with pytest.raises(ValueError):
        task.result()


@pytest.mark.asyncio
async def test_finish_on_all_keeps_input_order():
    assert await finish_on_all([_value(0.02, "a"), _value(0.01, "b")]) == ["a", "b"]


@pytest.mark.asyncio
async def test_finish_on_first_failed_returns_first_failure_by_completion():
    results = await finish_on_first_failed(
        [_value(0.03, "late-bad"), _value(0.01, "early-bad"), _value(0, "ok")],
        lambda result: result.endswith("bad"),
    )
    assert results == ["early-bad"]
    await asyncio.sleep(0.03)


@pytest.mark.asyncio
async def test_finish_on_first_failed_without_failures():
    assert await finish_on_first_failed([_value(0, "ok")], lambda result: False) == []
