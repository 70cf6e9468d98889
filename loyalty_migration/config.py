"""Run configuration for ``loyalty_migration``.

``ProcessorConfig`` carries every tunable of a migration run. Defaults mirror
the CLI defaults; the credential and host fall back to the
``LOYALTY_API_TOKEN`` and ``LOYALTY_API_HOST`` environment variables (a local
``.env`` is loaded by the CLI before this module reads them).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidInputError

DEFAULT_HOST = "apac.api.capillarytech.com"


@dataclass(frozen=True, slots=True)
class ProcessorConfig:
    """Tunables for one migration run.

    Attributes
    ----------
    authorization:
        Value sent verbatim in the ``Authorization`` header.
    host:
        Loyalty API host (no scheme).
    concurrency:
        Maximum number of sub-group requests in flight across the whole run.
    batch_size:
        Records accumulated from the CSV before one dispatch cycle.
    batch_concurrent_limit:
        Maximum users per sub-group (one API request each).
    retry_attempts:
        Attempts per request, including the first one.
    retry_delay_ms:
        Delay between attempts when the server gives no ``Retry-After`` hint.
    pace_seconds:
        Pause after every full macro-batch.
    request_timeout:
        Per-request timeout handed to the HTTP client, in seconds.
    output_dir:
        Root directory for the per-run output folders.
    error_log_dir:
        Directory for the per-run terminal-failure log.
    """

    authorization: str
    host: str = DEFAULT_HOST
    concurrency: int = 5
    batch_size: int = 500
    batch_concurrent_limit: int = 100
    retry_attempts: int = 3
    retry_delay_ms: int = 1000
    pace_seconds: float = 1.0
    request_timeout: float = 30.0
    output_dir: Path = Path("output")
    error_log_dir: Path = Path("error_logs")

    def __post_init__(self) -> None:
        if not self.authorization or not self.authorization.strip():
            raise InvalidInputError("an authorization token is required")
        if not self.host or not self.host.strip():
            raise InvalidInputError("a loyalty API host is required")

        for name in ("concurrency", "batch_size", "batch_concurrent_limit", "retry_attempts"):
            val = getattr(self, name)
            # Booleans are ints; disallow them explicitly.
            if isinstance(val, bool) or not isinstance(val, int) or val < 1:
                raise InvalidInputError(f"{name} must be a positive integer, got {val!r}")

        for name in ("retry_delay_ms", "pace_seconds"):
            if getattr(self, name) < 0:
                raise InvalidInputError(f"{name} must not be negative")
        if self.request_timeout <= 0:
            raise InvalidInputError("request_timeout must be positive")

    @classmethod
    def from_env(
        cls,
        *,
        authorization: str | None = None,
        host: str | None = None,
        **overrides: object,
    ) -> ProcessorConfig:
        """Build a config, filling the credential and host from the environment.

        Explicit arguments win over ``LOYALTY_API_TOKEN``/``LOYALTY_API_HOST``.
        """

        token = authorization or os.getenv("LOYALTY_API_TOKEN") or ""
        resolved_host = host or os.getenv("LOYALTY_API_HOST") or DEFAULT_HOST
        return cls(authorization=token, host=resolved_host, **overrides)  # type: ignore[arg-type]


__all__ = ["DEFAULT_HOST", "ProcessorConfig"]
