"""Pytest configuration for test isolation.

Runs write output folders and error logs relative to the working directory
and read the API credential from the environment. Each test gets its own
temporary working directory and a clean credential environment so nothing
leaks between tests or into the repository.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest

from loyalty_migration.logging_setup import PACKAGE_LOGGER


@pytest.fixture(autouse=True)
def _isolate_run_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for var in ("LOYALTY_API_TOKEN", "LOYALTY_API_HOST", "LOYALTY_MIGRATION_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    # The CLI callback binds a handler to whatever stderr CliRunner installed.
    yield
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(pkg.handlers):
        pkg.removeHandler(handler)
    pkg.propagate = True


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper writing ``rows`` (dicts) to a CSV under ``tmp_path``."""

    def _write(
        rows: Sequence[dict[str, str]],
        *,
        name: str = "users.csv",
        fieldnames: Sequence[str] | None = None,
    ) -> Path:
        path = tmp_path / name
        headers = list(fieldnames or (rows[0].keys() if rows else ["loyalty_user_id"]))
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=headers)
            writer.writeheader()
            writer.writerows(rows)
        return path

    return _write
