"""Bounded-concurrency, order-preserving map over a thread pool.

Used to send suggestion batches to the label-matching service in parallel
without flooding it: at most ``concurrency`` calls are in flight, results come
back in input order, and the first error cancels work not yet started.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` in flight.

    The returned list is in input order. A mapper exception propagates to the
    caller unchanged once pending-but-unstarted work has been cancelled.
    """

    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    pending = enumerate(iterable)
    results: dict[int, OutT] = {}
    index_of: dict[Future[OutT], int] = {}

    with ThreadPoolExecutor(max_workers=concurrency) as pool:

        def _submit_next() -> Future[OutT] | None:
            try:
                idx, item = next(pending)
            except StopIteration:
                return None
            fut = pool.submit(mapper, item)
            index_of[fut] = idx
            return fut

        active: set[Future[OutT]] = set()
        for _ in range(concurrency):
            fut = _submit_next()
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = index_of.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
            # Refill the window, one new task per completion.
            for _ in range(len(done)):
                fut = _submit_next()
                if fut is None:
                    break
                active.add(fut)

    return [results[i] for i in sorted(results)]


__all__ = ["p_map"]
