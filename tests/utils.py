# tests/utils.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio
from typing import Any, Callable, Optional


async def settle(rounds: int = 20) -> None:
    """Let scheduled tasks and their done-callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def delayed(seconds: float, result: Any = None, error: Optional[str] = None) -> Callable[..., Any]:
    """Build an async validator finishing after ``seconds``."""

    async def validator(rule, value):
        await asyncio.sleep(seconds)
        if error is not None:
            raise ValueError(error)
        return result

    return validator
