"""Pipeline driver: stream records, macro-batch, dispatch, aggregate.

States: ACCUMULATING -> (buffer full) DISPATCHING -> ACCUMULATING ... ->
(source exhausted, buffer non-empty) final DISPATCHING -> DONE.

Each full buffer is handed to the coordinator as-is and a fresh list starts
the next accumulation, so nothing downstream ever sees a buffer being
mutated. After every full macro-batch the driver pauses for
``pace_seconds`` to throttle the request rate independently of the
concurrency cap; the final partial batch is not followed by a pause.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable

from .coordinator import BatchCoordinator
from .ingest import iter_user_records
from .logging_setup import get_logger
from .models import ProcessingResult, RawUserRecord, UserResult

_logger = get_logger("loyalty_migration.pipeline")


class PipelineDriver:
    def __init__(
        self,
        coordinator: BatchCoordinator,
        *,
        batch_size: int,
        pace_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.coordinator = coordinator
        self.batch_size = batch_size
        self.pace_seconds = pace_seconds
        self._sleep = sleep

    def _dispatch(self, batch: list[RawUserRecord], collected: list[UserResult]) -> int:
        t0 = time.perf_counter()
        collected.extend(self.coordinator.process(batch))
        _logger.info(
            "pipeline:batch_done users=%d latency_ms=%.2f",
            len(batch),
            (time.perf_counter() - t0) * 1000.0,
        )
        return len(batch)

    def run(self, records: Iterable[RawUserRecord]) -> ProcessingResult:
        """Consume ``records`` sequentially and return the partitioned outcome."""

        collected: list[UserResult] = []
        processed = 0
        batch: list[RawUserRecord] = []

        for record in records:
            batch.append(record)
            if len(batch) >= self.batch_size:
                full, batch = batch, []
                processed += self._dispatch(full, collected)
                _logger.info("pipeline:progress processed=%d", processed)
                if self.pace_seconds > 0:
                    self._sleep(self.pace_seconds)

        if batch:
            processed += self._dispatch(batch, collected)
            _logger.info("pipeline:progress processed=%d", processed)

        result = ProcessingResult(total_processed=processed)
        for user in collected:
            (result.successful if user.success else result.failed).append(user)
        return result

    def process_csv_file(self, csv_path: str | os.PathLike[str]) -> ProcessingResult:
        """Stream ``csv_path`` through :meth:`run`.

        Raises :class:`~loyalty_migration.errors.InvalidInputError` before any
        dispatch when the file is not an acceptable CSV.
        """

        return self.run(iter_user_records(csv_path))


__all__ = ["PipelineDriver"]
