"""Run async work over items in fixed-size concurrent groups."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

log = structlog.get_logger("dephealth.engine")

T = TypeVar("T")
R = TypeVar("R")


def partition(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split *items* into consecutive groups of *size*; the last may be shorter."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


async def run_batched(
    items: Sequence[T],
    limit: int,
    work: Callable[[T], Awaitable[R]],
    *,
    on_error: Callable[[T, BaseException], R] | None = None,
) -> list[R]:
    """Apply *work* to every item, at most *limit* at a time.

    Each group of *limit* items runs concurrently and the next group starts
    only once every member of the current one has settled. ``result[i]``
    always corresponds to ``items[i]``.

    Every item is processed even if earlier ones fail. A failed item's slot
    is filled by ``on_error(item, exc)`` when given; otherwise the first
    failure is re-raised after all groups have run.
    """
    batches = partition(items, limit)
    results: list[R] = []
    first_error: BaseException | None = None

    for index, batch in enumerate(batches):
        log.debug("batch.start", batch=index + 1, of=len(batches), size=len(batch))
        outcomes = await asyncio.gather(*(work(item) for item in batch), return_exceptions=True)
        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                if on_error is None:
                    if first_error is None:
                        first_error = outcome
                    continue
                results.append(on_error(item, outcome))
            else:
                results.append(outcome)

    if first_error is not None:
        raise first_error
    return results
