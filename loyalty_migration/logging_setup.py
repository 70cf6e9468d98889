"""Logging for the ``loyalty_migration`` package.

The CLI calls :func:`configure_logging` once at startup; library modules only
call :func:`get_logger` and never attach handlers themselves. Until the
package logger is configured it carries a ``NullHandler`` so embedding
applications see nothing unless they opt in.

Messages follow an ``event:name key=value`` shape, e.g.
``retry:scheduled attempt=1/3 delay_s=1.00``. The default format includes the
thread name because sub-group requests run on ``lm-fetch`` worker threads.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "loyalty_migration"
LOG_LEVEL_ENV = "LOYALTY_MIGRATION_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or the env override, or INFO) into a numeric level.

    Unknown names fall through to the next source instead of raising.
    """

    for candidate in (level, os.getenv(LOG_LEVEL_ENV)):
        if isinstance(candidate, int):
            return candidate
        if not candidate:
            continue
        name = candidate.strip().upper()
        if name.isdigit():
            return int(name)
        mapped = logging.getLevelNamesMapping().get(name)
        if mapped is not None:
            return mapped
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Attach one stream handler to the package logger and return it.

    Calling again replaces the previous handler instead of stacking a second
    one, so the level can be changed at runtime.
    """

    global _handler
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(pkg.handlers):
        if existing is _handler or isinstance(existing, logging.NullHandler):
            pkg.removeHandler(existing)

    resolved = resolve_level(level)
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(_handler)
    pkg.setLevel(resolved)
    # Records stop at the package logger.
    pkg.propagate = False
    return pkg


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
