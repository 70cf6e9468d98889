"""Terminal-failure log for a migration run.

Each run owns one JSON file holding an array of entries::

    [
      {
        "timestamp": "2025-01-01T00:00:00.000000+00:00",
        "attempt": 3,
        "error": "429 Client Error: Too Many Requests for url: ...",
        "details": {"status": 429, "data": "...", "headers": {"Retry-After": "2"}}
      }
    ]

The file and its directory are created on the first append, so clean runs
leave nothing behind. Appends are read-modify-write under a lock and land via
``os.replace`` of a ``.tmp`` sibling, which keeps the array valid when worker
threads fail at the same time.
"""

from __future__ import annotations

import json
import os
import threading
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

import requests

from .logging_setup import get_logger

_logger = get_logger("loyalty_migration.error_log")


class ErrorLogSink(Protocol):
    """Destination for terminal-failure entries."""

    def append(self, entry: dict[str, Any]) -> None: ...


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def build_error_entry(error: BaseException, attempt: int) -> dict[str, Any]:
    """Describe ``error`` as a log entry.

    HTTP-shaped errors (``requests.HTTPError`` carrying a response) contribute
    status code, body and headers; anything else is recorded by type and
    message.
    """

    response = getattr(error, "response", None)
    if isinstance(error, requests.RequestException) and response is not None:
        details: dict[str, Any] = {
            "status": response.status_code,
            "data": _response_body(response),
            "headers": dict(response.headers),
        }
    else:
        details = {"type": error.__class__.__name__, "message": str(error)}

    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "attempt": attempt,
        "error": str(error) or error.__class__.__name__,
        "details": details,
    }


class JsonArrayErrorLog:
    """Append-only JSON array file, safe to share between worker threads."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    @classmethod
    def for_run(cls, directory: str | os.PathLike[str]) -> JsonArrayErrorLog:
        """Return a log at ``<directory>/errors_<unix_ms>.json``."""

        return cls(Path(directory) / f"errors_{int(time.time() * 1000)}.json")

    def _read(self) -> list[Any]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _logger.warning("error_log:unreadable path=%s error=%s", self.path, e)
            return []
        return raw if isinstance(raw, list) else []

    def append(self, entry: dict[str, Any]) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            entries = self._read()
            entries.append(entry)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(
                json.dumps(entries, indent=2, ensure_ascii=False, default=str),
                encoding="utf-8",
            )
            os.replace(tmp, self.path)

    def entries(self) -> list[Any]:
        with self._lock:
            return self._read()


__all__ = ["ErrorLogSink", "JsonArrayErrorLog", "build_error_entry"]
