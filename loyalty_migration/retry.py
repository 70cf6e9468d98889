"""Bounded retry around a single loyalty API call.

:class:`RetryExecutor` never raises. A call that keeps failing turns into a
:class:`TerminalFailure` value after the last attempt, with one entry written
to the run's error log. Callers decide what a terminal failure means for the
users involved.

Backoff policy:
- HTTP 429 with a numeric ``Retry-After`` header: wait that many seconds.
- Anything else (including 429 without a usable hint): wait the configured
  base delay.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .error_log import ErrorLogSink, build_error_entry
from .logging_setup import get_logger

_logger = get_logger("loyalty_migration.retry")

_RATE_LIMIT_STATUS = 429


@dataclass(frozen=True, slots=True)
class TerminalFailure:
    """Returned instead of a result once every attempt has failed."""

    message: str
    detail: Any = None
    attempts: int = 0


def retry_after_seconds(error: BaseException) -> float | None:
    """Return the server's ``Retry-After`` hint for a rate-limited response.

    Only HTTP 429 responses with a numeric header qualify; HTTP-date values
    and non-429 errors yield ``None``.
    """

    response = getattr(error, "response", None)
    if response is None or getattr(response, "status_code", None) != _RATE_LIMIT_STATUS:
        return None
    raw = (getattr(response, "headers", None) or {}).get("Retry-After")
    if raw is None:
        return None
    try:
        seconds = float(str(raw).strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class RetryExecutor:
    """Run a zero-argument callable with bounded retries.

    Parameters
    ----------
    max_attempts:
        Total attempts including the first (>= 1).
    base_delay_ms:
        Delay between attempts when no rate-limit hint applies.
    error_log:
        Sink receiving one entry per terminal failure.
    sleep:
        Blocking sleep used between attempts. It only parks the calling
        worker thread, so sibling requests keep running.
    """

    def __init__(
        self,
        max_attempts: int,
        base_delay_ms: int,
        *,
        error_log: ErrorLogSink,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.error_log = error_log
        self._sleep = sleep

    def _delay_for(self, error: BaseException) -> tuple[float, bool]:
        hinted = retry_after_seconds(error)
        if hinted is not None:
            return hinted, True
        return self.base_delay_ms / 1000.0, False

    def _record_terminal(self, error: BaseException, attempt: int) -> None:
        try:
            self.error_log.append(build_error_entry(error, attempt))
        except OSError as log_err:
            # A broken error log must not turn into a raised request failure.
            _logger.error("retry:error_log_write_failed error=%s", log_err)

    def execute[T](self, work: Callable[[], T]) -> T | TerminalFailure:
        """Invoke ``work`` until it succeeds or attempts run out."""

        for attempt in range(1, self.max_attempts + 1):
            t0 = time.perf_counter()
            try:
                return work()
            except Exception as e:  # noqa: BLE001
                dt_ms = (time.perf_counter() - t0) * 1000.0
                if attempt >= self.max_attempts:
                    _logger.error(
                        "retry:terminal attempts=%d latency_ms=%.2f error=%s",
                        attempt,
                        dt_ms,
                        e.__class__.__name__,
                    )
                    self._record_terminal(e, attempt)
                    return TerminalFailure(
                        message="Request failed after all retry attempts",
                        detail=str(e) or e.__class__.__name__,
                        attempts=attempt,
                    )

                delay_s, rate_limited = self._delay_for(e)
                _logger.warning(
                    "retry:scheduled attempt=%d/%d delay_s=%.2f rate_limited=%s error=%s",
                    attempt,
                    self.max_attempts,
                    delay_s,
                    rate_limited,
                    e.__class__.__name__,
                )
                self._sleep(delay_s)

        return TerminalFailure(message="Unexpected end of retry loop", attempts=self.max_attempts)


__all__ = ["RetryExecutor", "TerminalFailure", "retry_after_seconds"]
