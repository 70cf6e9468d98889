"""Fan a macro-batch out to the detail fetcher in bounded sub-groups.

The concurrency gate is a ``BoundedSemaphore`` owned by the coordinator, so
the cap on in-flight requests holds across every macro-batch of a run, not
just within one ``process`` call.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence

from .fetcher import DetailFetcher
from .logging_setup import get_logger
from .models import RawUserRecord, UserResult
from .pmap import p_map

_logger = get_logger("loyalty_migration.coordinator")


def split_sub_groups(
    users: Sequence[RawUserRecord], size: int
) -> Iterator[list[RawUserRecord]]:
    """Yield contiguous slices of at most ``size`` users, in input order."""

    if size < 1:
        raise ValueError("sub-group size must be >= 1")
    for base in range(0, len(users), size):
        yield list(users[base : base + size])


class BatchCoordinator:
    """Split, dispatch under the global cap, and reassemble results."""

    def __init__(self, fetcher: DetailFetcher, *, concurrency: int, sub_group_size: int) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if sub_group_size < 1:
            raise ValueError("sub_group_size must be >= 1")
        self.fetcher = fetcher
        self.concurrency = concurrency
        self.sub_group_size = sub_group_size
        self._gate = threading.BoundedSemaphore(concurrency)

    def _fetch_gated(self, group: list[RawUserRecord]) -> list[UserResult]:
        with self._gate:
            return self.fetcher.fetch(group)

    def process(self, users: Sequence[RawUserRecord]) -> list[UserResult]:
        """Return per-user results concatenated in sub-group submission order."""

        groups = list(split_sub_groups(users, self.sub_group_size))
        if not groups:
            return []

        _logger.info(
            "coordinator:dispatch users=%d sub_groups=%d concurrency=%d",
            len(users),
            len(groups),
            self.concurrency,
        )
        per_group = p_map(
            groups,
            self._fetch_gated,
            concurrency=min(self.concurrency, len(groups)),
            thread_name_prefix="lm-fetch",
        )

        out: list[UserResult] = []
        for results in per_group:
            out.extend(results)
        return out


__all__ = ["BatchCoordinator", "split_sub_groups"]
