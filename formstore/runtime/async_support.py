# formstore/runtime/async_support.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Iterable, List, TypeVar

from formstore.core.errors import EventLoopError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def schedule(coro: Coroutine[Any, Any, T]) -> "asyncio.Task[T]":
    """
    Start ``coro`` as a task on the running loop so that it runs after the current
    synchronous step has finished.

    :raises EventLoopError: If no event loop is running in this thread.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        raise EventLoopError("Validation needs a running asyncio event loop") from None
    return loop.create_task(coro)


def consume_task_exception(task: "asyncio.Future[Any]") -> None:
    """
    Done-callback that marks a task's exception as retrieved. Tasks whose failure is
    an expected outcome (a rejected validation nobody awaited) would otherwise be
    reported by the loop as "exception was never retrieved".
    """
    if not task.cancelled():
        task.exception()


def detach(task: "asyncio.Future[T]") -> "asyncio.Future[T]":
    """Mark ``task`` as fire-and-forget and return it unchanged."""
    task.add_done_callback(consume_task_exception)
    return task


async def finish_on_all(awaitables: Iterable[Awaitable[T]]) -> List[T]:
    """Wait for every awaitable and return their results in input order."""
    return list(await asyncio.gather(*awaitables))


async def finish_on_first_failed(awaitables: Iterable[Awaitable[T]], is_failed: Callable[[T], bool]) -> List[T]:
    """
    Run all awaitables concurrently and return ``[result]`` for the first result,
    by completion order, that ``is_failed`` accepts. Returns ``[]`` once every
    awaitable completed without a failure.

    The remaining awaitables are not cancelled; they run to completion and their
    results are dropped.
    """
    tasks = [detach(asyncio.ensure_future(awaitable)) for awaitable in awaitables]
    for next_done in asyncio.as_completed(tasks):
        result = await next_done
        if is_failed(result):
            return [result]
    return []
