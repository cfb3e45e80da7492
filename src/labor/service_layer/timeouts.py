"""
Time budgets for calls into the blocking adapters.

Every store, directory and mail call runs in a worker thread and is bounded
with asyncio.wait_for. When the budget expires the coroutine gets a Timeout
result; the worker thread finishes on its own and its unit of work rolls back
unless it already committed.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable

import config
from labor.domain.results import Timeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Timeouts:
    short: float = 0.5
    long: float = 2.0

    @classmethod
    def from_config(cls) -> "Timeouts":
        budgets = config.get_timeouts()
        return cls(short=budgets["short"], long=budgets["long"])


async def run_blocking(budget: float, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Run fn in a worker thread, raising asyncio.TimeoutError after budget seconds."""
    return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout=budget)


def timeout_as_result(operation: str):
    """Decorator for service coroutines: an expired budget becomes Timeout(operation)."""

    def decorator(method):
        @functools.wraps(method)
        async def wrapper(*args, **kwargs):
            try:
                return await method(*args, **kwargs)
            except asyncio.TimeoutError:
                logger.warning(f"Timeout in {operation}")
                return Timeout(operation)

        return wrapper

    return decorator
