"""Order-preserving parallel ``map`` over a thread pool.

Used for the sub-groups of one macro-batch, which are few and already in
memory, so every item is submitted up front. The run-wide request cap is the
coordinator's semaphore; ``concurrency`` here only sizes the pool.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor


def p_map[InT, OutT](
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    thread_name_prefix: str = "lm-worker",
) -> list[OutT]:
    """Return ``[mapper(x) for x in iterable]`` computed on ``concurrency`` threads.

    The first mapper error (in input order) cancels work that has not started
    yet and propagates.
    """

    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix=thread_name_prefix) as pool:
        futures = [pool.submit(mapper, item) for item in iterable]
        try:
            return [fut.result() for fut in futures]
        except Exception:
            for fut in futures:
                fut.cancel()
            raise


__all__ = ["p_map"]
