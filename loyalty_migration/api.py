"""Public orchestration entry point for ``loyalty_migration``.

:func:`migrate_users` wires the run together (error log, retry executor, API
client, detail fetcher, batch coordinator, pipeline driver), processes one
CSV file and writes the output artifacts. Input validation happens before any
network traffic; past that point no failure aborts the run.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import requests

from .client import LoyaltyApiClient
from .config import ProcessorConfig
from .coordinator import BatchCoordinator
from .error_log import JsonArrayErrorLog
from .fetcher import DetailFetcher
from .ingest import iter_user_records
from .logging_setup import get_logger
from .models import ProcessingResult
from .output import write_run_artifacts
from .pipeline import PipelineDriver
from .retry import RetryExecutor

_logger = get_logger("loyalty_migration.api")


@dataclass(frozen=True, slots=True)
class MigrationReport:
    """What a run produced and where it went."""

    result: ProcessingResult
    started_at_ms: int
    ended_at_ms: int
    output_dir: Path
    files: tuple[Path, ...]
    error_log: Path


def build_pipeline(
    config: ProcessorConfig,
    *,
    error_log: JsonArrayErrorLog,
    session: requests.Session | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineDriver:
    """Assemble the component stack for ``config``."""

    client = LoyaltyApiClient(
        config.host,
        config.authorization,
        timeout=config.request_timeout,
        session=session,
    )
    executor = RetryExecutor(
        config.retry_attempts,
        config.retry_delay_ms,
        error_log=error_log,
        sleep=sleep,
    )
    coordinator = BatchCoordinator(
        DetailFetcher(client, executor),
        concurrency=config.concurrency,
        sub_group_size=config.batch_concurrent_limit,
    )
    return PipelineDriver(
        coordinator,
        batch_size=config.batch_size,
        pace_seconds=config.pace_seconds,
        sleep=sleep,
    )


def migrate_users(
    csv_path: str | os.PathLike[str],
    config: ProcessorConfig,
    *,
    session: requests.Session | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> MigrationReport:
    """Migrate every user in ``csv_path`` and write the run artifacts.

    Raises :class:`~loyalty_migration.errors.InvalidInputError` when the file
    is not an acceptable CSV; that check runs before any request is made.
    """

    records = iter_user_records(csv_path)
    error_log = JsonArrayErrorLog.for_run(config.error_log_dir)
    driver = build_pipeline(config, error_log=error_log, session=session, sleep=sleep)

    started_at_ms = int(time.time() * 1000)
    _logger.info("migrate:start input=%s", csv_path)
    try:
        result = driver.run(records)
    finally:
        driver.coordinator.fetcher.client.close()
    ended_at_ms = int(time.time() * 1000)

    output_dir, files = write_run_artifacts(
        result, config.output_dir, run_id=str(ended_at_ms)
    )
    _logger.info(
        "migrate:done total=%d successful=%d failed=%d output=%s",
        result.total_processed,
        len(result.successful),
        len(result.failed),
        output_dir,
    )
    return MigrationReport(
        result=result,
        started_at_ms=started_at_ms,
        ended_at_ms=ended_at_ms,
        output_dir=output_dir,
        files=tuple(files),
        error_log=error_log.path,
    )


__all__ = ["MigrationReport", "build_pipeline", "migrate_users"]
