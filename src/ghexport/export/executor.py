"""Bounded concurrent task executor.

Runs zero-argument async task factories with at most ``concurrency`` in
flight, returning results in input order. Workers share a next-index
counter; that is safe because every worker runs on the same event loop and
only yields at ``await``.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from ..cancellation import AbortError, AbortSignal

__all__ = ["DEFAULT_CONCURRENCY", "execute_tasks", "normalize_concurrency"]

T = TypeVar("T")

DEFAULT_CONCURRENCY = 4


def normalize_concurrency(value: Any) -> int:
    """Clamp to an int >= 1; non-numbers and non-finite values become 1."""
    if value is None:
        return DEFAULT_CONCURRENCY
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 1
    if not math.isfinite(value) or value < 1:
        return 1
    return int(math.floor(value))


async def execute_tasks(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    concurrency: Optional[float] = DEFAULT_CONCURRENCY,
    signal: Optional[AbortSignal] = None,
) -> list[T]:
    """Run *tasks* with bounded concurrency.

    A worker checks *signal* before claiming each task and raises
    AbortError once it is aborted. Tasks already running are not
    interrupted here; they are expected to honour the signal themselves.
    If any task raises, the remaining workers are cancelled and the
    exception propagates.

    Returns:
        Results in the same order as *tasks*.
    """
    if not tasks:
        return []

    limit = normalize_concurrency(concurrency)
    results: list[Any] = [None] * len(tasks)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(tasks):
            if signal is not None and signal.aborted:
                raise AbortError()
            index = next_index
            next_index += 1
            results[index] = await tasks[index]()

    workers = [asyncio.ensure_future(worker()) for _ in range(min(limit, len(tasks)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    return results
